"""Declarative base for ORM models."""

from enum import Enum

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models."""


def enum_values(enum_cls: type[Enum]) -> list[str]:
    """Persist enum members by value, matching the JSON API."""
    return [member.value for member in enum_cls]
