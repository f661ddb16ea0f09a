"""
Declarative base for relational entities.

Entities are cached as JSON, so the base knows how to turn a mapped instance
into a JSON-safe dict of its column values and back again.
"""

from datetime import datetime
from typing import Any, Dict, Type, TypeVar

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase

E = TypeVar('E', bound='Base')


class Base(DeclarativeBase):
    """Canonical Base class for all database models."""

    def to_dict(self) -> Dict[str, Any]:
        """Return column values, with datetimes as ISO strings."""
        data: Dict[str, Any] = {}
        for column in self.__table__.columns:
            value = getattr(self, column.key, None)
            if isinstance(value, datetime):
                value = value.isoformat()
            data[column.key] = value
        return data

    @classmethod
    def from_dict(cls: Type[E], data: Dict[str, Any]) -> E:
        """Build a detached instance from a dict produced by ``to_dict``.

        Unknown keys are ignored; missing keys are left unset.
        """
        values: Dict[str, Any] = {}
        for column in cls.__table__.columns:
            if column.key not in data:
                continue
            value = data[column.key]
            if isinstance(column.type, DateTime) and isinstance(value, str):
                value = datetime.fromisoformat(value)
            values[column.key] = value
        return cls(**values)

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.to_dict()!r})'
