"""
User repository: the generic repository plus lookup by username.
"""

from typing import Optional

from ecommerce.dal import CacheStore, EntityStore, RepositoryResult
from ecommerce.dal.generic_repository import GenericRepository
from ecommerce.handlers.utils.observability import logger, tracer
from ecommerce.models.cache import CacheModel, CacheSnapshot
from ecommerce.models.user import User


class UserRepository(GenericRepository[User]):
    """Repository for User entities."""

    def __init__(
        self,
        store: EntityStore[User],
        cache: CacheStore,
        create_snapshot: CacheSnapshot = CacheSnapshot.INPUT,
    ) -> None:
        super().__init__(store, cache, User, create_snapshot=create_snapshot)

    @tracer.capture_method
    async def find_by_username(self, username: str, cache_model: Optional[CacheModel] = None) -> RepositoryResult[User]:
        """Same cache-first, populate-on-miss contract as ``find_entity_by_id``."""
        try:
            if cache_model:
                cached = await self.cache.get(cache_model.key)
                if cached:
                    return RepositoryResult.success(self._deserialize(cached))

            user = await self.store.find_one_by(username=username)
            if user is None:
                logger.warning(f'[UserRepository] No user found with username: {username}')
                return RepositoryResult.not_found()

            if cache_model:
                await self.cache.set(cache_model.key, self._serialize(user), cache_model.expiration)

            return RepositoryResult.success(user)
        except Exception as e:
            logger.error('[UserRepository] Error finding user by username', extra={'username': username, 'error': str(e)})
            return RepositoryResult.failure(e)
