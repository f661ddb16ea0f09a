"""
Per-call cache directives for repository operations.
"""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class CacheModel(BaseModel):
    """Describes whether and how a repository call uses the cache.

    Passing no CacheModel to a repository operation bypasses the cache entirely.
    """

    model_config = ConfigDict(frozen=True)

    key: Annotated[str, Field(
        min_length=1,
        description='Cache key the operation reads and writes',
        examples=['user:john', 'user:id:42'],
    )]

    expiration: Annotated[int, Field(
        gt=0,
        description='Time-to-live of the cache entry in seconds',
        examples=[3600],
    )]


class CacheSnapshot(str, Enum):
    """Which entity state ``create_entity`` writes to the cache."""

    # the entity as passed in by the caller, before the store assigns ids or defaults
    INPUT = 'input'
    # the entity as returned by the store after the insert
    PERSISTED = 'persisted'
