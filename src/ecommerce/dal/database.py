"""
SQLAlchemy implementation of the relational backing store.

The engine and session factory are created once per process by the bootstrap
step; each store operation runs in its own short session and returns detached
instances.
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ecommerce.handlers.utils.errors import ConfigurationError
from ecommerce.handlers.utils.observability import logger
from ecommerce.models.base import Base

T = TypeVar('T', bound=Base)

# db/type parameter value -> async SQLAlchemy driver
DRIVERS = {
    'postgres': 'postgresql+asyncpg',
    'postgresql': 'postgresql+asyncpg',
    'sqlite': 'sqlite+aiosqlite',
}


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings read from Parameter Store."""

    type: str
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None

    def url(self) -> URL:
        driver = DRIVERS.get(self.type.lower())
        if driver is None:
            raise ConfigurationError(f"Unsupported database type: {self.type}")
        if driver.startswith('sqlite'):
            return URL.create(driver, database=self.name or ':memory:')
        return URL.create(
            driver,
            username=self.username,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.name,
        )


def create_engine(settings: DatabaseSettings, **engine_kwargs: Any) -> AsyncEngine:
    """Create the process-wide async engine for the configured database."""
    url = settings.url()
    if url.drivername.startswith('postgresql'):
        engine_kwargs.setdefault('pool_pre_ping', True)
    engine = create_async_engine(url, **engine_kwargs)
    logger.info('Database engine created', extra={'driver': url.drivername, 'host': url.host})
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False keeps returned entities readable after the session closes
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Create missing tables for every mapped entity."""
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    logger.info('Database schema synchronized')


class SqlAlchemyStore(Generic[T]):
    """Backing store for one mapped entity type."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], model: Type[T]) -> None:
        self.session_factory = session_factory
        self.model = model

    async def save(self, entity: T) -> T:
        async with self.session_factory() as session:
            async with session.begin():
                session.add(entity)
            await session.refresh(entity)
            session.expunge(entity)
            return entity

    async def find_by_id(self, entity_id: int) -> Optional[T]:
        async with self.session_factory() as session:
            return await session.get(self.model, entity_id)

    async def find_one_by(self, **criteria: Any) -> Optional[T]:
        async with self.session_factory() as session:
            stmt = select(self.model).filter_by(**criteria).limit(1)
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def update(self, entity_id: int, values: Dict[str, Any]) -> int:
        """Apply a partial update, returning the number of affected rows."""
        async with self.session_factory() as session:
            async with session.begin():
                stmt = update(self.model).where(self.model.id == entity_id).values(**values)
                result = await session.execute(stmt)
            return result.rowcount

    async def delete(self, entity_id: int) -> int:
        """Delete by primary key, returning the number of affected rows."""
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(delete(self.model).where(self.model.id == entity_id))
            return result.rowcount

    async def find_all(self) -> List[T]:
        async with self.session_factory() as session:
            result = await session.execute(select(self.model).order_by(self.model.id))
            return list(result.scalars().all())

    async def find_and_count(self, skip: int, take: int) -> Tuple[List[T], int]:
        """Return rows ``[skip, skip + take)`` ordered by id, and the total row count."""
        async with self.session_factory() as session:
            rows = await session.execute(
                select(self.model).order_by(self.model.id).offset(skip).limit(take)
            )
            total = await session.execute(select(func.count()).select_from(self.model))
            return list(rows.scalars().all()), total.scalar_one()
