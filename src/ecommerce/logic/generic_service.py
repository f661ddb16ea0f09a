"""
Generic CRUD service.

A thin pass-through over a repository that logs every call. It adds no error
handling: anything the repository raises reaches the caller unchanged.
"""

from typing import Any, Dict, Generic, List, Optional, TypeVar

from ecommerce.dal import Page, RepositoryResult
from ecommerce.dal.generic_repository import GenericRepository
from ecommerce.handlers.utils.observability import logger
from ecommerce.models.base import Base
from ecommerce.models.cache import CacheModel

T = TypeVar('T', bound=Base)


class GenericService(Generic[T]):
    """Forwards CRUD calls to a repository with the same cache directive."""

    def __init__(self, repository: GenericRepository[T]) -> None:
        self.repository = repository
        self._name = type(self).__name__

    async def save(self, entity: T, cache_model: Optional[CacheModel] = None) -> RepositoryResult[T]:
        logger.info(f'[{self._name}] Saving entity: {type(entity).__name__}')
        return await self.repository.create_entity(entity, cache_model)

    async def find_by_id(self, entity_id: int, cache_model: Optional[CacheModel] = None) -> RepositoryResult[T]:
        logger.info(f'[{self._name}] Finding entity by ID: {entity_id}')
        return await self.repository.find_entity_by_id(entity_id, cache_model)

    async def update(
        self,
        entity_id: int,
        updated_data: Dict[str, Any],
        cache_model: Optional[CacheModel] = None,
    ) -> RepositoryResult[T]:
        logger.info(f'[{self._name}] Updating entity with ID: {entity_id}', extra={'fields': sorted(updated_data)})
        return await self.repository.update_entity(entity_id, updated_data, cache_model)

    async def delete(self, entity_id: int, cache_model: Optional[CacheModel] = None) -> RepositoryResult[bool]:
        logger.info(f'[{self._name}] Deleting entity with ID: {entity_id}')
        return await self.repository.delete_entity(entity_id, cache_model)

    async def find_all(self, cache_model: Optional[CacheModel] = None) -> List[T]:
        logger.info(f'[{self._name}] Finding all entities')
        return await self.repository.get_all_entities(cache_model)

    async def find_with_pagination(
        self,
        skip: int,
        take: int,
        cache_model: Optional[CacheModel] = None,
    ) -> Page[T]:
        logger.info(f'[{self._name}] Finding entities with pagination: skip={skip}, take={take}')
        return await self.repository.get_entities_with_pagination(skip, take, cache_model)
