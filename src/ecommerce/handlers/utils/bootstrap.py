"""
Per-container startup.

The Application container is built once per Lambda container: parameters are
read from SSM, the Redis pool and the SQLAlchemy engine are opened, and the
repositories, adapters and services are wired together. All async work runs on
a single event loop kept for the container's lifetime, so pooled connections
stay bound to the loop that created them.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Coroutine, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncEngine

from ecommerce.dal.cache import CacheClient, connect_cache
from ecommerce.dal.database import DatabaseSettings, SqlAlchemyStore, create_engine, create_schema, create_session_factory
from ecommerce.dal.user_repository import UserRepository
from ecommerce.handlers.models.env_vars import UsersHandlerEnvVars, get_handler_env_vars
from ecommerce.handlers.utils.errors import ConfigurationError
from ecommerce.handlers.utils.observability import logger
from ecommerce.integrations import parameter_store as params
from ecommerce.integrations.cognito import CognitoIdentityProvider
from ecommerce.integrations.kms import KmsPasswordEncryptor
from ecommerce.integrations.parameter_store import ParameterStore
from ecommerce.integrations.s3 import S3FileStorage
from ecommerce.logic.file_service import FileService
from ecommerce.logic.password_service import PasswordService
from ecommerce.logic.user_service import UserService
from ecommerce.models.user import User

R = TypeVar('R')


@dataclass
class Application:
    """Process-wide services and the connections they share."""

    env: UsersHandlerEnvVars
    parameter_store: ParameterStore
    cache: CacheClient
    engine: AsyncEngine
    user_repository: UserRepository
    user_service: UserService
    file_service: FileService

    async def close(self) -> None:
        await self.cache.close()
        await self.engine.dispose()


async def load_database_settings(parameter_store: ParameterStore) -> DatabaseSettings:
    """Read the ``db/*`` parameters. SQLite only needs ``db/type`` and ``db/name``."""
    db_type = await parameter_store.get_parameter(params.DB_TYPE)
    if db_type.lower() == 'sqlite':
        return DatabaseSettings(type=db_type, name=await parameter_store.get_parameter(params.DB_NAME))

    port = await parameter_store.get_parameter(params.DB_PORT)
    if not port.isdigit():
        raise ConfigurationError(f"Invalid database port: {port}")

    return DatabaseSettings(
        type=db_type,
        host=await parameter_store.get_parameter(params.DB_HOST),
        port=int(port),
        username=await parameter_store.get_parameter(params.DB_USERNAME),
        password=await parameter_store.get_parameter(params.DB_PASSWORD),
        name=await parameter_store.get_parameter(params.DB_NAME),
    )


async def build_application(
    env: UsersHandlerEnvVars,
    parameter_store: Optional[ParameterStore] = None,
) -> Application:
    """
    Build the Application container.

    Order: parameters, cache connection, database engine, services. A failure
    at any step aborts startup.
    """
    parameter_store = parameter_store or ParameterStore(prefix=env.PARAMETER_PREFIX)

    redis_url = await parameter_store.get_parameter(params.REDIS_URL)
    cache = await connect_cache(redis_url)

    engine = create_engine(await load_database_settings(parameter_store))
    if env.db_synchronize:
        await create_schema(engine)

    user_repository = UserRepository(
        SqlAlchemyStore(create_session_factory(engine), User),
        cache,
        create_snapshot=env.CACHE_CREATE_SNAPSHOT,
    )
    password_service = PasswordService(parameter_store, KmsPasswordEncryptor(region_name=env.AWS_REGION))
    user_service = UserService(
        user_repository,
        CognitoIdentityProvider(parameter_store, region_name=env.AWS_REGION),
        password_service,
        cache_ttl=env.USER_CACHE_TTL_SECONDS,
        rollback_identity_provider=env.rollback_identity_provider,
    )
    file_service = FileService(S3FileStorage(parameter_store, region_name=env.AWS_REGION))

    logger.info('Application initialized', extra={'environment': env.ENVIRONMENT, 'cache_snapshot': env.CACHE_CREATE_SNAPSHOT.value})
    return Application(
        env=env,
        parameter_store=parameter_store,
        cache=cache,
        engine=engine,
        user_repository=user_repository,
        user_service=user_service,
        file_service=file_service,
    )


_loop: Optional[asyncio.AbstractEventLoop] = None
_application: Optional[Application] = None


def run_async(coro: Coroutine[Any, Any, R]) -> R:
    """Run a coroutine to completion on the container's event loop."""
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
    return _loop.run_until_complete(coro)


def get_application() -> Application:
    """Return the container's Application, building it on first use."""
    global _application
    if _application is None:
        _application = run_async(build_application(get_handler_env_vars()))
    return _application


def reset_application() -> None:
    """Forget the cached Application so the next call rebuilds it."""
    global _application
    if _application is not None:
        run_async(_application.close())
    _application = None
