"""
Data Access Layer (DAL) for the e-commerce backend.

This module defines the contracts the repositories are written against: the
key-value cache, the relational backing store, and the result type returned by
repository operations that must not raise.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, List, Optional, Protocol, Tuple, TypeVar, runtime_checkable

T = TypeVar('T')


class ResultStatus(str, Enum):
    """Outcome of a repository operation."""

    OK = 'ok'
    NOT_FOUND = 'not_found'
    ERROR = 'error'


@dataclass(frozen=True)
class RepositoryResult(Generic[T]):
    """Explicit outcome of a repository call.

    ``value`` is the nullable view callers used to get: the entity (or ``True``
    for deletes) on success, ``None`` (or ``False`` for deletes) otherwise.
    ``committed`` is set on an ERROR result whose write reached the backing
    store before a later step failed, so callers can undo it.
    """

    status: ResultStatus
    value: Optional[T] = None
    error: Optional[BaseException] = None
    committed: Optional[T] = None

    @classmethod
    def success(cls, value: T) -> 'RepositoryResult[T]':
        return cls(ResultStatus.OK, value)

    @classmethod
    def not_found(cls, value: Optional[T] = None) -> 'RepositoryResult[T]':
        return cls(ResultStatus.NOT_FOUND, value)

    @classmethod
    def failure(
        cls,
        error: BaseException,
        value: Optional[T] = None,
        committed: Optional[T] = None,
    ) -> 'RepositoryResult[T]':
        return cls(ResultStatus.ERROR, value, error, committed)

    @property
    def ok(self) -> bool:
        return self.status is ResultStatus.OK

    @property
    def is_not_found(self) -> bool:
        return self.status is ResultStatus.NOT_FOUND

    @property
    def failed(self) -> bool:
        return self.status is ResultStatus.ERROR


@dataclass
class Page(Generic[T]):
    """A window of rows plus the total number of rows in the store."""

    data: List[T] = field(default_factory=list)
    count: int = 0


@runtime_checkable
class CacheStore(Protocol):
    """Protocol of the key-value cache facade."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


@runtime_checkable
class EntityStore(Protocol[T]):
    """Protocol of the relational backing store for one entity type."""

    async def save(self, entity: T) -> T:
        ...

    async def find_by_id(self, entity_id: int) -> Optional[T]:
        ...

    async def find_one_by(self, **criteria: Any) -> Optional[T]:
        ...

    async def update(self, entity_id: int, values: dict) -> int:
        ...

    async def delete(self, entity_id: int) -> int:
        ...

    async def find_all(self) -> List[T]:
        ...

    async def find_and_count(self, skip: int, take: int) -> Tuple[List[T], int]:
        ...


__all__ = [
    'CacheStore',
    'EntityStore',
    'Page',
    'RepositoryResult',
    'ResultStatus',
]
