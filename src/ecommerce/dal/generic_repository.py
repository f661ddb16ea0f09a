"""
Cache-augmented generic repository.

Every operation takes an optional CacheModel. Without one the cache is never
touched; with one the operation reads through and writes through the key it
names. Create/find/update/delete never raise: failures are logged and reported
through RepositoryResult.
"""

import json
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from ecommerce.dal import CacheStore, EntityStore, Page, RepositoryResult
from ecommerce.handlers.utils.observability import logger, tracer
from ecommerce.models.base import Base
from ecommerce.models.cache import CacheModel, CacheSnapshot

T = TypeVar('T', bound=Base)


class EntityNotFoundError(LookupError):
    """Internal signal that a row is absent; never leaves the repository."""


class GenericRepository(Generic[T]):
    """CRUD over one entity type with optional write-through caching."""

    def __init__(
        self,
        store: EntityStore[T],
        cache: CacheStore,
        model: Type[T],
        create_snapshot: CacheSnapshot = CacheSnapshot.INPUT,
    ) -> None:
        """
        Initialize the repository.

        Args:
            store: Backing store for the entity type
            cache: Key-value cache facade
            model: Mapped entity class, used to rebuild entities from cached JSON
            create_snapshot: Entity state cached by ``create_entity``. ``INPUT``
                caches what the caller passed in, even if the store assigns ids or
                defaults on insert; ``PERSISTED`` caches the stored row instead.
        """
        self.store = store
        self.cache = cache
        self.model = model
        self.create_snapshot = create_snapshot
        self._name = type(self).__name__

    def _serialize(self, entity: T) -> str:
        return json.dumps(entity.to_dict())

    def _deserialize(self, payload: str) -> T:
        return self.model.from_dict(json.loads(payload))

    @tracer.capture_method
    async def create_entity(self, entity: T, cache_model: Optional[CacheModel] = None) -> RepositoryResult[T]:
        try:
            # the store assigns ids on the same instance, so capture the input first
            input_snapshot = entity.to_dict()
            saved_entity = await self.store.save(entity)
        except Exception as e:
            logger.error(f'[{self._name}] Error creating entity', extra={'error': str(e)})
            return RepositoryResult.failure(e)

        if cache_model:
            try:
                cached = await self.cache.get(cache_model.key)
                if not cached:
                    if self.create_snapshot is CacheSnapshot.PERSISTED:
                        payload = self._serialize(saved_entity)
                    else:
                        payload = json.dumps(input_snapshot)
                    await self.cache.set(cache_model.key, payload, cache_model.expiration)
            except Exception as e:
                logger.error(
                    f'[{self._name}] Entity created but caching failed',
                    extra={'entity_id': saved_entity.id, 'key': cache_model.key, 'error': str(e)},
                )
                return RepositoryResult.failure(e, committed=saved_entity)

        return RepositoryResult.success(saved_entity)

    @tracer.capture_method
    async def find_entity_by_id(self, entity_id: int, cache_model: Optional[CacheModel] = None) -> RepositoryResult[T]:
        try:
            if cache_model:
                cached = await self.cache.get(cache_model.key)
                if cached:
                    return RepositoryResult.success(self._deserialize(cached))

            entity = await self.store.find_by_id(entity_id)
            if entity is None:
                raise EntityNotFoundError(f'Entity with ID {entity_id} not found')

            if cache_model:
                await self.cache.set(cache_model.key, self._serialize(entity), cache_model.expiration)

            return RepositoryResult.success(entity)
        except EntityNotFoundError:
            logger.info(f'[{self._name}] Entity not found', extra={'entity_id': entity_id})
            return RepositoryResult.not_found()
        except Exception as e:
            logger.error(f'[{self._name}] Error finding entity', extra={'entity_id': entity_id, 'error': str(e)})
            return RepositoryResult.failure(e)

    @tracer.capture_method
    async def update_entity(
        self,
        entity_id: int,
        updated_data: Dict[str, Any],
        cache_model: Optional[CacheModel] = None,
    ) -> RepositoryResult[T]:
        """
        Update a row and return its canonical post-update state.

        If the update statement itself fails, the row is treated as corrupted and
        deleted. Callers must be prepared for a failed update to remove the row.
        """
        try:
            await self.store.update(entity_id, updated_data)
        except Exception as e:
            logger.error(f'[{self._name}] Error updating entity', extra={'entity_id': entity_id, 'error': str(e)})
            await self._roll_back_update(entity_id, cache_model)
            return RepositoryResult.failure(e)

        reread = await self.find_entity_by_id(entity_id)
        if not reread.ok:
            logger.error(f'[{self._name}] Entity with ID: {entity_id} not found after update')
            return reread

        if cache_model:
            try:
                await self.cache.set(cache_model.key, self._serialize(reread.value), cache_model.expiration)
            except Exception as e:
                logger.error(f'[{self._name}] Error refreshing cache after update', extra={'key': cache_model.key, 'error': str(e)})
                return RepositoryResult.failure(e)

        return reread

    async def _roll_back_update(self, entity_id: int, cache_model: Optional[CacheModel]) -> None:
        found = await self.find_entity_by_id(entity_id)
        if not found.ok:
            return
        # evict the caller's key along with the row
        deleted = await self.delete_entity(found.value.id, cache_model)
        if deleted.ok:
            logger.info(f'[{self._name}] Database entity rolled back', extra={'entity': found.value.to_dict()})
        else:
            logger.error(f'[{self._name}] Rollback of entity failed', extra={'entity_id': entity_id})

    @tracer.capture_method
    async def delete_entity(self, entity_id: int, cache_model: Optional[CacheModel] = None) -> RepositoryResult[bool]:
        try:
            affected = await self.store.delete(entity_id)
            if not affected:
                raise EntityNotFoundError(f'Entity with ID {entity_id} not found')

            if cache_model:
                await self.cache.delete(cache_model.key)

            return RepositoryResult.success(True)
        except EntityNotFoundError:
            logger.error(f'[{self._name}] Failed to delete entity with ID: {entity_id}')
            return RepositoryResult.not_found(False)
        except Exception as e:
            logger.error(f'[{self._name}] Error deleting entity', extra={'entity_id': entity_id, 'error': str(e)})
            return RepositoryResult.failure(e, False)

    @tracer.capture_method
    async def get_all_entities(self, cache_model: Optional[CacheModel] = None) -> List[T]:
        if cache_model:
            cached = await self.cache.get(cache_model.key)
            if cached:
                return [self.model.from_dict(item) for item in json.loads(cached)]

        entities = await self.store.find_all()

        if cache_model:
            payload = json.dumps([entity.to_dict() for entity in entities])
            await self.cache.set(cache_model.key, payload, cache_model.expiration)

        return entities

    @tracer.capture_method
    async def get_entities_with_pagination(
        self,
        skip: int,
        take: int,
        cache_model: Optional[CacheModel] = None,
    ) -> Page[T]:
        """
        Return ``take`` rows starting at zero-based offset ``skip``.

        A cache hit is returned verbatim, but a miss does not populate the cache.
        """
        if cache_model:
            cached = await self.cache.get(cache_model.key)
            if cached:
                page = json.loads(cached)
                return Page(
                    data=[self.model.from_dict(item) for item in page['data']],
                    count=page['count'],
                )

        data, count = await self.store.find_and_count(skip=skip, take=take)
        return Page(data=data, count=count)


def serialize_page(page: Page[Base]) -> str:
    """JSON form of a page, matching what the pagination path reads back."""
    return json.dumps({'data': [entity.to_dict() for entity in page.data], 'count': page.count})
