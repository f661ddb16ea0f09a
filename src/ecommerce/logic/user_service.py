"""
User workflows.

Registration, confirmation, authentication and password reset cross the
identity provider, KMS and the user repository. Each workflow logs the
underlying cause of a failure and re-raises a WorkflowError with a fixed,
generic message. Registration undoes its committed side effects before
raising.
"""

import json
from typing import Any, Dict, List, Optional

from aws_lambda_powertools.metrics import MetricUnit

from ecommerce.dal import Page
from ecommerce.dal.generic_repository import serialize_page
from ecommerce.dal.user_repository import UserRepository
from ecommerce.handlers.utils.errors import (
    ErrorContext,
    ResourceNotFoundError,
    ValidationError,
    WorkflowError,
    create_error_context,
)
from ecommerce.handlers.utils.observability import logger, metrics, tracer
from ecommerce.integrations.cognito import CognitoIdentityProvider
from ecommerce.logic.generic_service import GenericService
from ecommerce.logic.password_service import PasswordService
from ecommerce.models.cache import CacheModel
from ecommerce.models.user import User

REGISTRATION_FAILED = 'Registration failed'
CONFIRMATION_FAILED = 'User confirmation failed'
AUTHENTICATION_FAILED = 'Authentication failed: Invalid username or password'
INITIATE_RESET_FAILED = 'Failed to initiate password reset'
COMPLETE_RESET_FAILED = 'Failed to complete password reset'

# authentication always caches the resolved user for an hour
AUTHENTICATION_CACHE_TTL = 3600

ALL_USERS_CACHE_KEY = 'users:all'


class UserNotFoundError(ResourceNotFoundError):
    """Raised when a user is not found."""

    def __init__(self, user_id: Any, context: Optional[ErrorContext] = None):
        super().__init__(resource_type="User", resource_id=str(user_id), context=context)


def username_cache_key(username: str) -> str:
    return f'user:{username}'


def user_id_cache_key(user_id: int) -> str:
    return f'user:id:{user_id}'


def page_cache_key(page: int, page_size: int) -> str:
    return f'users:page:{page}:size:{page_size}'


class UserService(GenericService[User]):
    """User workflows on top of the generic CRUD service."""

    def __init__(
        self,
        repository: UserRepository,
        identity_provider: CognitoIdentityProvider,
        password_service: PasswordService,
        cache_ttl: int = 3600,
        rollback_identity_provider: bool = True,
    ) -> None:
        """
        Initialize the user service.

        Args:
            repository: User repository; its cache is also used for best-effort
                invalidation after writes
            identity_provider: Cognito user pool adapter
            password_service: Encrypts passwords before they are stored
            cache_ttl: TTL in seconds for ``user:id:<id>`` and page entries
            rollback_identity_provider: Delete the pool user when a registration
                fails after the pool user was created
        """
        super().__init__(repository)
        self.repository: UserRepository = repository
        self.cache = repository.cache
        self.identity_provider = identity_provider
        self.password_service = password_service
        self.cache_ttl = cache_ttl
        self.rollback_identity_provider = rollback_identity_provider

    # Registration

    @tracer.capture_method
    async def save(self, entity: User, cache_model: Optional[CacheModel] = None) -> User:
        """
        Register a user.

        The pool user is created first, then the password is replaced with its
        KMS ciphertext and the row is stored, caching it under
        ``user:<username>`` unless another cache model is given.

        Returns:
            The persisted user with the encrypted password

        Raises:
            WorkflowError: "Registration failed", after compensation ran
        """
        username = entity.username
        plain_password = entity.password
        identity_created = False
        persisted: Optional[User] = None

        try:
            logger.info(f'[UserService] Registering user: {username}')
            await self.identity_provider.register_user(username, plain_password, entity.email)
            identity_created = True

            entity.password = await self.password_service.get_password_encrypted(plain_password)

            cache_model = cache_model or CacheModel(key=username_cache_key(username), expiration=AUTHENTICATION_CACHE_TTL)
            result = await super().save(entity, cache_model)
            if not result.ok:
                # the row may have been stored before caching failed
                persisted = result.committed
                raise WorkflowError('User could not be persisted') from result.error
            persisted = result.value

            logger.info(f'[UserService] User created in database: {username}', extra={'user_id': persisted.id})
            metrics.add_metric(name='UserRegistered', unit=MetricUnit.Count, value=1)
            return persisted
        except Exception as e:
            logger.exception(f'[UserService] Registration failed for user: {username}', extra={'error': str(e)})
            await self._compensate_registration(username, identity_created, persisted)
            context = create_error_context('register', username, identity_created=identity_created, persisted=persisted is not None)
            raise WorkflowError(REGISTRATION_FAILED, error_code='REGISTRATION_FAILED', context=context) from e

    async def _compensate_registration(self, username: str, identity_created: bool, persisted: Optional[User]) -> None:
        """Undo what a failed registration committed. Never raises."""
        metrics.add_metric(name='RegistrationRollback', unit=MetricUnit.Count, value=1)

        try:
            await self.cache.delete(username_cache_key(username))
            logger.info(f'[UserService] Cache removed for user: {username}')
        except Exception as e:
            logger.error(f'[UserService] Rollback of cache failed for user: {username}', extra={'error': str(e)})

        if identity_created and self.rollback_identity_provider:
            try:
                await self.identity_provider.delete_user(username)
                logger.info(f'[UserService] Identity provider user rolled back: {username}')
            except Exception as e:
                logger.error(f'[UserService] Rollback of identity provider user failed: {username}', extra={'error': str(e)})

        if persisted is not None:
            deleted = await self.repository.delete_entity(persisted.id)
            if deleted.ok:
                logger.info(f'[UserService] Database user rolled back: {username}')
            else:
                logger.error(f'[UserService] Rollback of database user failed: {username}', extra={'user_id': persisted.id})

    @tracer.capture_method
    async def confirm_registration(self, username: str, confirmation_code: str) -> None:
        try:
            logger.info(f'[UserService] Confirming registration for user: {username}')
            await self.identity_provider.confirm_registration(username, confirmation_code)
            logger.info(f'[UserService] User confirmed successfully: {username}')
        except Exception as e:
            logger.error(f'[UserService] Confirmation failed for user: {username}', extra={'error': str(e)})
            context = create_error_context('confirm_registration', username)
            raise WorkflowError(CONFIRMATION_FAILED, error_code='CONFIRMATION_FAILED', context=context) from e

    # Authentication

    @tracer.capture_method
    async def authenticate(self, username: str, password: str) -> tuple[str, User]:
        """
        Exchange credentials for an identity provider token.

        The user is resolved through ``user:<username>`` and cached there on a
        miss. A valid token for a user that cannot be resolved is still an
        authentication failure.

        Returns:
            The ID token and the resolved user

        Raises:
            WorkflowError: "Authentication failed: Invalid username or password"
        """
        try:
            logger.info(f'[UserService] Starting authentication for user: {username}')
            token = await self.identity_provider.authenticate(username, password)

            cache_model = CacheModel(key=username_cache_key(username), expiration=AUTHENTICATION_CACHE_TTL)
            result = await self.repository.find_by_username(username, cache_model)
            if result.failed:
                raise WorkflowError('Failed to retrieve user details') from result.error
            if not result.ok:
                logger.warning(
                    f'[UserService] Token issued but user not found in cache or database: {username}',
                    extra={'username': username},
                )
                raise UserNotFoundError(username)

            logger.info(f'[UserService] User authenticated successfully: {username}')
            return token, result.value
        except Exception as e:
            logger.error(f'[UserService] Authentication process failed for user: {username}', extra={'error': str(e)})
            metrics.add_metric(name='AuthenticationFailed', unit=MetricUnit.Count, value=1)
            context = create_error_context('authenticate', username)
            raise WorkflowError(AUTHENTICATION_FAILED, error_code='AUTHENTICATION_FAILED', context=context) from e

    # Password reset

    @tracer.capture_method
    async def initiate_password_reset(self, username: str) -> None:
        if not username:
            logger.warning('[UserService] Missing username for password reset')
            raise ValidationError('Missing required field: username')

        try:
            logger.info(f'[UserService] Initiating password reset for user: {username}')
            await self.identity_provider.initiate_password_reset(username)
            logger.info(f'[UserService] Password reset initiated successfully for user: {username}')
        except Exception as e:
            logger.error(f'[UserService] Failed to initiate password reset for user: {username}', extra={'error': str(e)})
            context = create_error_context('initiate_password_reset', username)
            raise WorkflowError(INITIATE_RESET_FAILED, error_code='PASSWORD_RESET_FAILED', context=context) from e

    @tracer.capture_method
    async def complete_password_reset(self, username: str, new_password: str, confirmation_code: str) -> None:
        """
        Finish a password reset and store the new password ciphertext.

        Raises:
            ValidationError: If a field is missing; nothing has been called yet
            WorkflowError: "Failed to complete password reset"
        """
        if not username or not new_password or not confirmation_code:
            logger.warning('[UserService] Missing required fields for password reset')
            raise ValidationError('Missing required fields: username, newPassword, or confirmationCode')

        try:
            logger.info(f'[UserService] Starting password reset for user: {username}')
            await self.identity_provider.complete_password_reset(username, new_password, confirmation_code)

            encrypted_password = await self.password_service.get_password_encrypted(new_password)

            found = await self.repository.find_by_username(username)
            if not found.ok:
                raise WorkflowError('User not found in the repository') from found.error
            user_id = found.value.id

            updated = await self.repository.update_entity(user_id, {'password': encrypted_password})
            if not updated.ok:
                raise WorkflowError('Failed to update password in the repository') from updated.error
            logger.info(f'[UserService] Password updated in the database for user: {username}')
        except Exception as e:
            logger.error(f'[UserService] Failed to complete password reset for user: {username}', extra={'error': str(e)})
            context = create_error_context('complete_password_reset', username)
            raise WorkflowError(COMPLETE_RESET_FAILED, error_code='PASSWORD_RESET_FAILED', context=context) from e

        await self._evict(username_cache_key(username), user_id_cache_key(user_id))

    # User CRUD

    @tracer.capture_method
    async def get_user_by_id(self, user_id: int) -> User:
        """
        Resolve a user through ``user:id:<id>``.

        A failed cache read is not fatal: the lookup is retried against the
        database without the cache.
        """
        result = await self.find_by_id(user_id, CacheModel(key=user_id_cache_key(user_id), expiration=self.cache_ttl))
        if result.failed:
            logger.warning(
                f'[UserService] Cached lookup failed, reading user from database. ID: {user_id}',
                extra={'error': str(result.error)},
            )
            result = await self.find_by_id(user_id)
        if result.is_not_found:
            raise UserNotFoundError(user_id)
        if result.failed:
            raise WorkflowError('Failed to fetch user by ID') from result.error
        return result.value

    @tracer.capture_method
    async def get_all_users(self) -> List[User]:
        """Every user, cached under ``users:all``; cache failures fall back to the database."""
        cache_model = CacheModel(key=ALL_USERS_CACHE_KEY, expiration=self.cache_ttl)
        try:
            return await self.find_all(cache_model)
        except Exception as e:
            logger.warning('[UserService] Failed to use cache for all users', extra={'error': str(e)})

        try:
            return await self.find_all()
        except Exception as e:
            logger.error('[UserService] Failed to retrieve users from database', extra={'error': str(e)})
            raise WorkflowError('Failed to fetch users from database') from e

    @tracer.capture_method
    async def update_user(self, user_id: int, updated_data: Dict[str, Any]) -> User:
        """
        Apply a partial update.

        A failed update statement deletes the row (see
        ``GenericRepository.update_entity``), so both cache keys of the user are
        cleared before the error is raised.
        """
        if not updated_data:
            logger.warning(f'[UserService] No data provided for user update. ID: {user_id}')
            raise ValidationError('No data provided for update')

        cache_model = CacheModel(key=user_id_cache_key(user_id), expiration=self.cache_ttl)
        current = await self.find_by_id(user_id, cache_model)
        if current.is_not_found:
            raise UserNotFoundError(user_id)

        result = await self.update(user_id, updated_data, cache_model)
        if not result.ok:
            stale_keys = [user_id_cache_key(user_id)]
            if current.ok:
                stale_keys.append(username_cache_key(current.value.username))
            await self._evict(*stale_keys)
        if result.is_not_found:
            raise UserNotFoundError(user_id)
        if result.failed:
            raise WorkflowError('Failed to update user') from result.error

        user = result.value
        if current.ok and current.value.username != user.username:
            await self._evict(username_cache_key(current.value.username))
        try:
            await self.cache.set(username_cache_key(user.username), json.dumps(user.to_dict()), self.cache_ttl)
        except Exception as e:
            logger.warning(f'[UserService] Failed to update cache for user ID: {user_id}', extra={'error': str(e)})
        return user

    @tracer.capture_method
    async def delete_user(self, user_id: int) -> None:
        found = await self.find_by_id(user_id)
        if found.is_not_found:
            raise UserNotFoundError(user_id)
        if found.failed:
            raise WorkflowError('Failed to delete user') from found.error
        user = found.value

        deleted = await self.delete(user_id)
        if deleted.is_not_found:
            raise UserNotFoundError(user_id)
        if deleted.failed:
            raise WorkflowError('Failed to delete user') from deleted.error

        logger.info(f'[UserService] User deleted: {user.username} (ID: {user_id})')
        await self._evict(username_cache_key(user.username), user_id_cache_key(user_id))

    @tracer.capture_method
    async def list_users(self, page: int, page_size: int) -> Page[User]:
        """
        Return one page of users, ``page`` counted from 1.

        The page is cached under ``users:page:<page>:size:<page_size>``.
        """
        if page < 1 or page_size < 1:
            logger.warning(f'[UserService] Invalid pagination parameters: page={page}, size={page_size}')
            raise ValidationError('Invalid pagination parameters: page and page_size must be greater than 0')

        cache_model = CacheModel(key=page_cache_key(page, page_size), expiration=self.cache_ttl)
        try:
            result = await self.find_with_pagination((page - 1) * page_size, page_size, cache_model)
        except Exception as e:
            logger.error(f'[UserService] Failed to retrieve users: page={page}, size={page_size}', extra={'error': str(e)})
            raise WorkflowError('Failed to fetch users from database') from e

        # the repository only reads this key, so populate it here
        try:
            if not await self.cache.get(cache_model.key):
                await self.cache.set(cache_model.key, serialize_page(result), cache_model.expiration)
        except Exception as e:
            logger.warning(f'[UserService] Failed to cache users: page={page}, size={page_size}', extra={'error': str(e)})

        return result

    async def _evict(self, *keys: str) -> None:
        for key in keys:
            try:
                await self.cache.delete(key)
            except Exception as e:
                logger.warning('[UserService] Failed to clear cache key', extra={'key': key, 'error': str(e)})
