"""Declarative base and shared column helpers for the ORM models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Type

from sqlalchemy import Enum as SqlEnum
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Return the current time as a naive UTC datetime (storage convention)."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def enum_type(enum_cls: Type[Enum], name: str) -> SqlEnum:
    """Return an Enum column type that persists member values, not names."""

    return SqlEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


__all__ = ["Base", "enum_type", "utcnow"]
