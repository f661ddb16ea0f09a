"""
Unit tests for the user workflows.

The real UserRepository runs against a mocked backing store and the in-memory
cache, so the tests observe exactly which store and cache calls each workflow
makes, including compensation.
"""

import json
from unittest.mock import AsyncMock

import pytest

from ecommerce.dal import Page
from ecommerce.dal.generic_repository import serialize_page
from ecommerce.dal.user_repository import UserRepository
from ecommerce.handlers.utils.errors import ValidationError, WorkflowError, get_http_status_code
from ecommerce.integrations.cognito import IdentityProviderError
from ecommerce.logic.user_service import UserNotFoundError, UserService


@pytest.fixture
def identity_provider() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def password_service() -> AsyncMock:
    service = AsyncMock()
    service.get_password_encrypted.return_value = "encrypted-password"
    return service


@pytest.fixture
def service(store, cache, identity_provider, password_service) -> UserService:
    return UserService(UserRepository(store, cache), identity_provider, password_service, cache_ttl=600)


def assign_id(user_id):
    async def _save(entity):
        entity.id = user_id
        return entity

    return _save


class TestRegistration:
    @pytest.mark.asyncio
    async def test_success_persists_encrypted_password_without_compensation(
        self, service, store, cache, identity_provider, password_service, make_user
    ):
        store.save.side_effect = assign_id(7)

        user = await service.save(make_user(password="S3cret!"))

        assert user.id == 7
        assert user.password == "encrypted-password"
        identity_provider.register_user.assert_awaited_once_with("john", "S3cret!", "john.doe@example.com")
        password_service.get_password_encrypted.assert_awaited_once_with("S3cret!")
        assert json.loads(cache.data["user:john"])["password"] == "encrypted-password"
        cache.delete.assert_not_awaited()
        identity_provider.delete_user.assert_not_awaited()
        store.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_identity_provider_failure_only_clears_cache(
        self, service, store, cache, identity_provider, password_service, make_user
    ):
        identity_provider.register_user.side_effect = IdentityProviderError("Registration failed")

        with pytest.raises(WorkflowError, match="^Registration failed$"):
            await service.save(make_user())

        cache.delete.assert_awaited_once_with("user:john")
        identity_provider.delete_user.assert_not_awaited()
        password_service.get_password_encrypted.assert_not_awaited()
        store.save.assert_not_awaited()
        store.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_encryption_failure_rolls_back_identity_provider(
        self, service, store, cache, identity_provider, password_service, make_user
    ):
        password_service.get_password_encrypted.side_effect = RuntimeError("kms unavailable")

        with pytest.raises(WorkflowError, match="Registration failed") as exc_info:
            await service.save(make_user())

        cache.delete.assert_awaited_once_with("user:john")
        identity_provider.delete_user.assert_awaited_once_with("john")
        store.save.assert_not_awaited()
        context = exc_info.value.context
        assert (context.operation, context.username) == ("register", "john")
        assert context.details == {"identity_created": True, "persisted": False}

    @pytest.mark.asyncio
    async def test_identity_rollback_can_be_disabled(self, store, cache, identity_provider, password_service, make_user):
        service = UserService(
            UserRepository(store, cache), identity_provider, password_service, rollback_identity_provider=False
        )
        password_service.get_password_encrypted.side_effect = RuntimeError("kms unavailable")

        with pytest.raises(WorkflowError):
            await service.save(make_user())

        cache.delete.assert_awaited_once_with("user:john")
        identity_provider.delete_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_persistence_failure_compensates_identity_provider(
        self, service, store, cache, identity_provider, make_user
    ):
        store.save.side_effect = RuntimeError("duplicate key")

        with pytest.raises(WorkflowError, match="Registration failed"):
            await service.save(make_user())

        identity_provider.delete_user.assert_awaited_once_with("john")
        store.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cache_failure_after_persisting_deletes_row(self, service, store, cache, identity_provider, make_user):
        store.save.side_effect = assign_id(7)
        store.delete.return_value = 1
        cache.set.side_effect = ConnectionError("redis down")

        with pytest.raises(WorkflowError, match="Registration failed") as exc_info:
            await service.save(make_user())

        store.delete.assert_awaited_once_with(7)
        identity_provider.delete_user.assert_awaited_once_with("john")
        cache.delete.assert_awaited_once_with("user:john")
        assert exc_info.value.context.details["persisted"] is True

    @pytest.mark.asyncio
    async def test_compensation_errors_are_not_raised(self, service, cache, identity_provider, password_service, make_user):
        password_service.get_password_encrypted.side_effect = RuntimeError("kms unavailable")
        cache.delete.side_effect = ConnectionError("redis down")
        identity_provider.delete_user.side_effect = IdentityProviderError("User deletion failed")

        with pytest.raises(WorkflowError, match="Registration failed") as exc_info:
            await service.save(make_user())

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        identity_provider.delete_user.assert_awaited_once_with("john")


class TestConfirmRegistration:
    @pytest.mark.asyncio
    async def test_confirm_success(self, service, identity_provider):
        await service.confirm_registration("john", "123456")

        identity_provider.confirm_registration.assert_awaited_once_with("john", "123456")

    @pytest.mark.asyncio
    async def test_confirm_failure(self, service, identity_provider):
        identity_provider.confirm_registration.side_effect = IdentityProviderError("User confirmation failed")

        with pytest.raises(WorkflowError, match="User confirmation failed"):
            await service.confirm_registration("john", "000000")


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_authenticate_resolves_and_caches_user(self, service, store, cache, identity_provider, sample_user):
        identity_provider.authenticate.return_value = "id-token"
        store.find_one_by.return_value = sample_user

        token, user = await service.authenticate("john", "S3cret!")

        assert token == "id-token"
        assert user is sample_user
        assert cache.ttls["user:john"] == 3600

    @pytest.mark.asyncio
    async def test_authenticate_uses_cached_user(self, service, store, cache, identity_provider, sample_user):
        identity_provider.authenticate.return_value = "id-token"
        cache.seed("user:john", sample_user.to_dict())

        _, user = await service.authenticate("john", "S3cret!")

        assert user.username == "john"
        store.find_one_by.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_valid_token_without_user_fails(self, service, store, identity_provider):
        identity_provider.authenticate.return_value = "id-token"
        store.find_one_by.return_value = None

        with pytest.raises(WorkflowError, match="Authentication failed: Invalid username or password") as exc_info:
            await service.authenticate("john", "S3cret!")

        assert isinstance(exc_info.value.__cause__, UserNotFoundError)

    @pytest.mark.asyncio
    async def test_identity_provider_rejection(self, service, store, identity_provider):
        identity_provider.authenticate.side_effect = IdentityProviderError("Authentication failed")

        with pytest.raises(WorkflowError, match="Authentication failed: Invalid username or password"):
            await service.authenticate("john", "wrong")

        store.find_one_by.assert_not_awaited()


class TestPasswordReset:
    @pytest.mark.asyncio
    async def test_initiate_requires_username(self, service, identity_provider):
        with pytest.raises(ValidationError):
            await service.initiate_password_reset("")

        identity_provider.initiate_password_reset.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_initiate_failure(self, service, identity_provider):
        identity_provider.initiate_password_reset.side_effect = IdentityProviderError("limit exceeded")

        with pytest.raises(WorkflowError, match="Failed to initiate password reset"):
            await service.initiate_password_reset("john")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("username, new_password, code", [
        ("", "N3w!", "123456"),
        ("john", "", "123456"),
        ("john", "N3w!", ""),
    ])
    async def test_complete_validates_before_side_effects(
        self, service, identity_provider, password_service, username, new_password, code
    ):
        with pytest.raises(ValidationError, match="Missing required fields"):
            await service.complete_password_reset(username, new_password, code)

        identity_provider.complete_password_reset.assert_not_awaited()
        password_service.get_password_encrypted.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_complete_stores_new_ciphertext_and_clears_cache(
        self, service, store, cache, identity_provider, password_service, sample_user, make_user
    ):
        store.find_one_by.return_value = sample_user
        store.update.return_value = 1
        store.find_by_id.return_value = make_user(user_id=1, password="encrypted-password")
        cache.seed("user:john", sample_user.to_dict())
        cache.seed("user:id:1", sample_user.to_dict())

        await service.complete_password_reset("john", "N3w!", "123456")

        identity_provider.complete_password_reset.assert_awaited_once_with("john", "N3w!", "123456")
        password_service.get_password_encrypted.assert_awaited_once_with("N3w!")
        store.update.assert_awaited_once_with(1, {"password": "encrypted-password"})
        assert "user:john" not in cache.data
        assert "user:id:1" not in cache.data

    @pytest.mark.asyncio
    async def test_complete_fails_when_user_missing(self, service, store):
        store.find_one_by.return_value = None

        with pytest.raises(WorkflowError, match="Failed to complete password reset"):
            await service.complete_password_reset("john", "N3w!", "123456")

        store.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_complete_survives_cache_clear_failure(self, service, store, cache, sample_user):
        store.find_one_by.return_value = sample_user
        store.update.return_value = 1
        store.find_by_id.return_value = sample_user
        cache.delete.side_effect = ConnectionError("redis down")

        await service.complete_password_reset("john", "N3w!", "123456")

        assert cache.delete.await_count == 2


class TestUserCrud:
    @pytest.mark.asyncio
    async def test_get_user_by_id_caches_under_id_key(self, service, store, cache, sample_user):
        store.find_by_id.return_value = sample_user

        user = await service.get_user_by_id(1)

        assert user is sample_user
        assert cache.ttls["user:id:1"] == 600

    @pytest.mark.asyncio
    async def test_get_user_by_id_not_found(self, service, store):
        store.find_by_id.return_value = None

        with pytest.raises(UserNotFoundError) as exc_info:
            await service.get_user_by_id(42)

        assert get_http_status_code(exc_info.value) == 404

    @pytest.mark.asyncio
    async def test_get_user_by_id_store_error(self, service, store):
        store.find_by_id.side_effect = RuntimeError("timeout")

        with pytest.raises(WorkflowError, match="Failed to fetch user by ID"):
            await service.get_user_by_id(1)

    @pytest.mark.asyncio
    async def test_update_user_rejects_empty_data(self, service, store):
        with pytest.raises(ValidationError, match="No data provided for update"):
            await service.update_user(1, {})

        store.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_user_refreshes_both_keys(self, service, store, cache, make_user):
        updated = make_user(user_id=1, email="new@example.com")
        store.update.return_value = 1
        store.find_by_id.return_value = updated

        user = await service.update_user(1, {"email": "new@example.com"})

        assert user is updated
        assert json.loads(cache.data["user:id:1"])["email"] == "new@example.com"
        assert json.loads(cache.data["user:john"])["email"] == "new@example.com"

    @pytest.mark.asyncio
    async def test_update_user_not_found(self, service, store):
        store.update.return_value = 0
        store.find_by_id.return_value = None

        with pytest.raises(UserNotFoundError):
            await service.update_user(9, {"email": "new@example.com"})

    @pytest.mark.asyncio
    async def test_delete_user_clears_both_keys(self, service, store, cache, sample_user):
        store.find_by_id.return_value = sample_user
        store.delete.return_value = 1
        cache.seed("user:john", sample_user.to_dict())
        cache.seed("user:id:1", sample_user.to_dict())

        await service.delete_user(1)

        store.delete.assert_awaited_once_with(1)
        assert cache.data == {}

    @pytest.mark.asyncio
    async def test_delete_user_not_found(self, service, store):
        store.find_by_id.return_value = None

        with pytest.raises(UserNotFoundError):
            await service.delete_user(5)

        store.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_update_clears_cached_user(self, service, store, cache, sample_user):
        store.find_by_id.return_value = sample_user
        await service.get_user_by_id(1)
        cache.seed("user:john", sample_user.to_dict())
        store.update.side_effect = RuntimeError("duplicate key value violates unique constraint")
        store.delete.return_value = 1

        with pytest.raises(WorkflowError, match="Failed to update user"):
            await service.update_user(1, {"username": "taken"})

        store.delete.assert_awaited_once_with(1)
        assert "user:id:1" not in cache.data
        assert "user:john" not in cache.data

        store.find_by_id.return_value = None
        with pytest.raises(UserNotFoundError):
            await service.get_user_by_id(1)

    @pytest.mark.asyncio
    async def test_update_user_rename_drops_old_username_key(self, service, store, cache, make_user):
        store.find_by_id.side_effect = [make_user(user_id=1), make_user(user_id=1, username="johnny")]
        store.update.return_value = 1
        cache.seed("user:john", make_user(user_id=1).to_dict())

        await service.update_user(1, {"username": "johnny"})

        assert "user:john" not in cache.data
        assert json.loads(cache.data["user:johnny"])["username"] == "johnny"

    @pytest.mark.asyncio
    async def test_get_user_by_id_falls_back_to_database_when_cache_fails(self, service, store, cache, sample_user):
        cache.get.side_effect = ConnectionError("redis down")
        store.find_by_id.return_value = sample_user

        user = await service.get_user_by_id(1)

        assert user is sample_user
        assert store.find_by_id.await_count == 1
        assert cache.get.await_count == 1


class TestGetAllUsers:
    @pytest.mark.asyncio
    async def test_caches_under_all_users_key(self, service, store, cache, sample_user):
        store.find_all.return_value = [sample_user]

        users = await service.get_all_users()

        assert users == [sample_user]
        assert json.loads(cache.data["users:all"])[0]["username"] == "john"
        assert cache.ttls["users:all"] == 600

    @pytest.mark.asyncio
    async def test_cached_list_is_returned_without_database(self, service, store, cache, sample_user):
        cache.seed("users:all", [sample_user.to_dict()])

        users = await service.get_all_users()

        assert [user.username for user in users] == ["john"]
        store.find_all.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cache_failure_falls_back_to_database(self, service, store, cache, sample_user):
        cache.get.side_effect = ConnectionError("redis down")
        store.find_all.return_value = [sample_user]

        assert await service.get_all_users() == [sample_user]

    @pytest.mark.asyncio
    async def test_database_failure(self, service, store):
        store.find_all.side_effect = RuntimeError("database unavailable")

        with pytest.raises(WorkflowError, match="Failed to fetch users from database"):
            await service.get_all_users()


class TestListUsers:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("page, page_size", [(0, 10), (1, 0), (-1, 5)])
    async def test_invalid_pagination(self, service, store, page, page_size):
        with pytest.raises(ValidationError, match="Invalid pagination parameters"):
            await service.list_users(page, page_size)

        store.find_and_count.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_miss_queries_offset_and_caches_page(self, service, store, cache, make_user):
        users = [make_user(user_id=11, username="user11")]
        store.find_and_count.return_value = (users, 11)

        result = await service.list_users(2, 10)

        assert result == Page(data=users, count=11)
        store.find_and_count.assert_awaited_once_with(skip=10, take=10)
        assert json.loads(cache.data["users:page:2:size:10"])["count"] == 11
        assert cache.ttls["users:page:2:size:10"] == 600

    @pytest.mark.asyncio
    async def test_hit_skips_store(self, service, store, cache, make_user):
        cache.seed("users:page:1:size:5", serialize_page(Page(data=[make_user(user_id=1)], count=1)))

        result = await service.list_users(1, 5)

        assert result.count == 1
        store.find_and_count.assert_not_awaited()
        cache.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_store_error_is_wrapped(self, service, store):
        store.find_and_count.side_effect = RuntimeError("database unavailable")

        with pytest.raises(WorkflowError, match="Failed to fetch users from database"):
            await service.list_users(1, 10)
