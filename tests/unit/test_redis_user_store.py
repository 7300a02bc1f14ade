"""Unit tests for RedisUserStore

Tests user storage operations with mocked Redis.
No external dependencies - uses unittest.mock for Redis operations.
"""

import json
from unittest.mock import AsyncMock, call

import pytest

from identity_service.domain.models import Provider, UserRecord
from identity_service.infrastructure.store import (
    EmailAlreadyRegisteredError,
    ExternalIdentityTakenError,
    RedisUserStore,
    UserNotFoundError,
    UserStoreError,
)


@pytest.fixture
def mock_redis():
    """Mock Redis client"""
    redis = AsyncMock()
    redis.set = AsyncMock(return_value=True)
    redis.get = AsyncMock(return_value=None)
    redis.delete = AsyncMock(return_value=1)
    redis.sadd = AsyncMock(return_value=1)
    redis.scard = AsyncMock(return_value=0)
    return redis


@pytest.fixture
def redis_store(mock_redis):
    """Create user store with mocked Redis"""
    return RedisUserStore(mock_redis)


def stored_user(user_id="user-1", email="jane@example.com", external_id="g-1"):
    return UserRecord(
        id=user_id,
        name="Jane",
        email=email,
        provider=Provider.GOOGLE,
        provider_external_id=external_id,
    )


@pytest.mark.unit
class TestCreateUser:
    """Test user creation"""

    @pytest.mark.asyncio
    async def test_create_user_success(self, redis_store, mock_redis):
        """Happy path: record written first, then indexes claimed with NX"""
        user = await redis_store.create(
            UserRecord(name="Jane", email="Jane@Example.com", provider=Provider.GOOGLE, provider_external_id="g-1")
        )

        assert user.id
        assert user.email == "Jane@Example.com"

        assert mock_redis.set.call_count == 3  # user key + email index + identity index
        user_call, email_call, identity_call = mock_redis.set.call_args_list
        assert user_call.args[0] == f"identity:user:{user.id}"
        assert json.loads(user_call.args[1])["provider"] == "google"
        assert email_call == call("identity:email:jane@example.com", user.id, nx=True)
        assert identity_call == call("identity:provider:google:g-1", user.id, nx=True)
        mock_redis.sadd.assert_called_once_with("identity:user_list", user.id)
        mock_redis.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_user_duplicate_email(self, redis_store, mock_redis):
        """Error case: email index already claimed, record removed again"""
        mock_redis.set.side_effect = [True, None]

        with pytest.raises(EmailAlreadyRegisteredError):
            await redis_store.create(stored_user(user_id=None))

        user_key = mock_redis.set.call_args_list[0].args[0]
        mock_redis.delete.assert_called_once_with(user_key)
        mock_redis.sadd.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_user_identity_taken_releases_email(self, redis_store, mock_redis):
        """Error case: identity index claimed, email index and record rolled back"""
        mock_redis.set.side_effect = [True, True, None]

        with pytest.raises(ExternalIdentityTakenError):
            await redis_store.create(stored_user(user_id=None))

        user_key = mock_redis.set.call_args_list[0].args[0]
        assert mock_redis.delete.call_args_list == [
            call("identity:email:jane@example.com"),
            call(user_key),
        ]
        mock_redis.sadd.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_user_list_failure_releases_keys(self, redis_store, mock_redis):
        """Error case: SADD fails after every key was written"""
        mock_redis.sadd.side_effect = ConnectionError("redis down")

        with pytest.raises(UserStoreError):
            await redis_store.create(stored_user(user_id=None))

        deleted = [c.args[0] for c in mock_redis.delete.call_args_list]
        assert deleted[:2] == ["identity:provider:google:g-1", "identity:email:jane@example.com"]
        assert deleted[2].startswith("identity:user:")


@pytest.mark.unit
class TestLookups:
    """Test user retrieval"""

    @pytest.mark.asyncio
    async def test_find_by_email(self, redis_store, mock_redis):
        user = stored_user()
        mock_redis.get.side_effect = ["user-1", json.dumps(user.to_dict())]

        found = await redis_store.find_by_email("JANE@example.com")

        assert found == user
        assert mock_redis.get.call_args_list[0] == call("identity:email:jane@example.com")
        assert mock_redis.get.call_args_list[1] == call("identity:user:user-1")

    @pytest.mark.asyncio
    async def test_find_by_provider_identity_decodes_bytes(self, redis_store, mock_redis):
        user = stored_user()
        mock_redis.get.side_effect = [b"user-1", json.dumps(user.to_dict()).encode()]

        found = await redis_store.find_by_provider_and_external_id(Provider.GOOGLE, "g-1")

        assert found.id == "user-1"
        assert mock_redis.get.call_args_list[0] == call("identity:provider:google:g-1")

    @pytest.mark.asyncio
    async def test_find_unknown_email(self, redis_store, mock_redis):
        assert await redis_store.find_by_email("nobody@example.com") is None
        assert mock_redis.get.call_count == 1

    @pytest.mark.asyncio
    async def test_redis_failure_is_store_error(self, redis_store, mock_redis):
        mock_redis.get.side_effect = ConnectionError("redis down")

        with pytest.raises(UserStoreError):
            await redis_store.get("user-1")

    @pytest.mark.asyncio
    async def test_count(self, redis_store, mock_redis):
        mock_redis.scard.return_value = 4

        assert await redis_store.count() == 4
        mock_redis.scard.assert_called_once_with("identity:user_list")


@pytest.mark.unit
class TestUpdateUser:
    """Test user updates"""

    @pytest.mark.asyncio
    async def test_update_unknown_user(self, redis_store, mock_redis):
        with pytest.raises(UserNotFoundError):
            await redis_store.update(stored_user())

    @pytest.mark.asyncio
    async def test_update_profile_only(self, redis_store, mock_redis):
        existing = stored_user()
        mock_redis.get.return_value = json.dumps(existing.to_dict())
        existing.name = "Jane Smith"

        updated = await redis_store.update(existing)

        assert updated.name == "Jane Smith"
        mock_redis.set.assert_called_once()
        assert json.loads(mock_redis.set.call_args.args[1])["name"] == "Jane Smith"
        mock_redis.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_relinks_identity(self, redis_store, mock_redis):
        existing = stored_user()
        mock_redis.get.return_value = json.dumps(existing.to_dict())
        existing.provider_external_id = "g-2"

        await redis_store.update(existing)

        assert mock_redis.set.call_args_list[0] == call("identity:provider:google:g-2", "user-1", nx=True)
        mock_redis.delete.assert_called_once_with("identity:provider:google:g-1")

    @pytest.mark.asyncio
    async def test_update_to_taken_identity(self, redis_store, mock_redis):
        existing = stored_user()
        mock_redis.get.return_value = json.dumps(existing.to_dict())
        mock_redis.set.return_value = None
        existing.provider_external_id = "g-2"

        with pytest.raises(ExternalIdentityTakenError):
            await redis_store.update(existing)

        mock_redis.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_record_write_releases_new_identity(self, redis_store, mock_redis):
        """Error case: record SET fails after the new identity was claimed"""
        existing = stored_user()
        mock_redis.get.return_value = json.dumps(existing.to_dict())
        mock_redis.set.side_effect = [True, ConnectionError("redis down")]
        existing.provider_external_id = "g-2"

        with pytest.raises(UserStoreError):
            await redis_store.update(existing)

        mock_redis.delete.assert_called_once_with("identity:provider:google:g-2")
