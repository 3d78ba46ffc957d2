"""Common response schemas and shared schema helpers."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import AliasChoices, AliasGenerator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def _accept_both(field_name: str) -> AliasChoices:
    return AliasChoices(to_camel(field_name), field_name)


class CamelModel(BaseModel):
    """Accept camelCase or snake_case input and serialise as camelCase."""

    model_config = ConfigDict(
        alias_generator=AliasGenerator(
            validation_alias=_accept_both,
            serialization_alias=to_camel,
        ),
        populate_by_name=True,
        from_attributes=True,
    )


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert aware datetimes to naive UTC; naive values are taken as UTC."""

    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class ErrorResponse(BaseModel):
    detail: str
    code: Optional[str] = None


class SuccessResponse(BaseModel):
    message: str
    data: Optional[dict] = None


__all__ = ["CamelModel", "ErrorResponse", "SuccessResponse", "to_naive_utc"]
