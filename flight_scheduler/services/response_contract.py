"""Pydantic models for validating the reschedule ranking returned by the LLM."""

from __future__ import annotations

import json
from typing import List

from pydantic import BaseModel, Field, ValidationError, model_validator


class ResponseContractError(RuntimeError):
    """Raised when the LLM response contract cannot be validated."""


class RankedSlot(BaseModel):
    slot_number: int = Field(ge=1)
    score: float
    reasoning: str = ""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @model_validator(mode="after")
    def normalize_score(cls, values: "RankedSlot") -> "RankedSlot":
        # Models answer on a 0-100 scale; proposals store 0-1.
        score = float(values.score)
        if score > 1.0:
            score = score / 100.0
        values.score = max(0.0, min(1.0, score))
        values.reasoning = values.reasoning.strip()
        return values


class SlotRankingResponse(BaseModel):
    proposals: List[RankedSlot] = Field(min_length=1)

    @classmethod
    def from_json(cls, payload: str) -> "SlotRankingResponse":
        cleaned = _clean_json_payload(payload)
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise ValidationError.from_exception_data(
                "SlotRankingResponse",
                line_errors=[
                    {
                        "type": "value_error",
                        "loc": ("__root__",),
                        "input": payload,
                        "ctx": {"error": str(exc)},
                    }
                ],
            )
        return cls.model_validate(data)


def _clean_json_payload(payload: str) -> str:
    """Strip Markdown code blocks and find the first/last brace to extract JSON."""
    if not payload:
        return ""

    cleaned = payload.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]

    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]

    cleaned = cleaned.strip()

    start = cleaned.find("{")
    end = cleaned.rfind("}")

    if start != -1 and end != -1 and end > start:
        cleaned = cleaned[start : end + 1]

    return cleaned


__all__ = [
    "RankedSlot",
    "ResponseContractError",
    "SlotRankingResponse",
]
