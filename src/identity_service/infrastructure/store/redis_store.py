"""Redis User Store

Purpose: Persist user records for the reconciler in Redis

Email uniqueness is enforced with SET NX on the email index, so two
concurrent first-time logins for the same email cannot both create a record.

Storage Schema:
- identity:user:{user_id} -> {user_json}
- identity:email:{email} -> {user_id}
- identity:provider:{provider}:{external_id} -> {user_id}
- identity:user_list -> {user_id, ...}
"""

import json
import logging
import uuid
from typing import List, Optional

from redis.asyncio import Redis

from identity_service.domain.models import Provider, UserRecord

from .base import (
    EmailAlreadyRegisteredError,
    ExternalIdentityTakenError,
    UserNotFoundError,
    UserStore,
    UserStoreError,
    normalize_email,
)

logger = logging.getLogger(__name__)


class RedisUserStore(UserStore):
    """Redis-backed user store

    Redis Storage Schema:
    - identity:user:{user_id} -> {user_data}
    - identity:email:{email} -> {user_id}
    - identity:provider:{provider}:{external_id} -> {user_id}
    - identity:user_list -> [{user_id}, ...]
    """

    def __init__(self, redis_client: Redis):
        """Initialize user store

        Args:
            redis_client: Redis connection for user storage
        """
        self.redis = redis_client

        # Redis key patterns
        self.user_key_pattern = "identity:user:{}"
        self.email_key_pattern = "identity:email:{}"
        self.identity_key_pattern = "identity:provider:{}:{}"
        self.user_list_key = "identity:user_list"

    async def get(self, user_id: str) -> Optional[UserRecord]:
        """Get user by ID

        Args:
            user_id: User identifier

        Returns:
            UserRecord if found, None otherwise
        """
        if not user_id:
            return None

        user_data = await self._redis_get(self.user_key_pattern.format(user_id))
        if not user_data:
            return None

        return UserRecord.from_dict(json.loads(user_data))

    async def find_by_provider_and_external_id(
        self, provider: Provider, external_id: str
    ) -> Optional[UserRecord]:
        if not external_id:
            return None
        user_id = await self._redis_get(self.identity_key_pattern.format(provider.value, external_id))
        return await self.get(user_id) if user_id else None

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        if not email:
            return None
        user_id = await self._redis_get(self.email_key_pattern.format(normalize_email(email)))
        return await self.get(user_id) if user_id else None

    async def count(self) -> int:
        try:
            return await self.redis.scard(self.user_list_key)
        except Exception as e:
            logger.error(f"Redis SCARD failed for key {self.user_list_key}: {e}")
            raise UserStoreError(f"User count failed: {e}") from e

    async def create(self, user: UserRecord) -> UserRecord:
        """Create new user

        The record is written before the email index is claimed, so any
        request that resolves the index also finds the record. Losing the
        SET NX race means another request registered the email first; every
        key written by this call is then removed again.

        Raises:
            EmailAlreadyRegisteredError: If the email already exists
            ExternalIdentityTakenError: If the provider identity is linked
        """
        user_id = str(uuid.uuid4())
        user_key = self.user_key_pattern.format(user_id)
        email_key = self.email_key_pattern.format(normalize_email(user.email))
        stored = UserRecord.from_dict({**user.to_dict(), "id": user_id})

        written = [user_key]
        try:
            await self._redis_set(user_key, json.dumps(stored.to_dict()))

            if not await self._redis_set(email_key, user_id, nx=True):
                raise EmailAlreadyRegisteredError(user.email)
            written.insert(0, email_key)

            if user.provider_external_id:
                identity_key = self.identity_key_pattern.format(
                    user.provider.value, user.provider_external_id
                )
                if not await self._redis_set(identity_key, user_id, nx=True):
                    raise ExternalIdentityTakenError(user.provider, user.provider_external_id)
                written.insert(0, identity_key)

            await self._redis_sadd(self.user_list_key, user_id)
        except Exception:
            await self._release(written)
            raise

        logger.info(f"Created user {user_id} ({stored.provider.value})")
        return stored

    async def update(self, user: UserRecord) -> UserRecord:
        """Update existing user

        New index keys are claimed before the record is rewritten and
        released again if any write fails. Old index keys are only removed
        once the record has been stored.

        Raises:
            UserNotFoundError: If user not found
            EmailAlreadyRegisteredError: If the new email already exists
            ExternalIdentityTakenError: If the new provider identity is linked
        """
        existing = await self.get(user.id)
        if not existing:
            raise UserNotFoundError(user.id)

        old_email = normalize_email(existing.email)
        new_email = normalize_email(user.email)
        identity_changed = (existing.provider, existing.provider_external_id) != (
            user.provider,
            user.provider_external_id,
        )

        claimed = []
        try:
            if new_email != old_email:
                email_key = self.email_key_pattern.format(new_email)
                if not await self._redis_set(email_key, user.id, nx=True):
                    raise EmailAlreadyRegisteredError(user.email)
                claimed.append(email_key)

            if identity_changed and user.provider_external_id:
                identity_key = self.identity_key_pattern.format(
                    user.provider.value, user.provider_external_id
                )
                if not await self._redis_set(identity_key, user.id, nx=True):
                    raise ExternalIdentityTakenError(user.provider, user.provider_external_id)
                claimed.append(identity_key)

            await self._redis_set(self.user_key_pattern.format(user.id), json.dumps(user.to_dict()))
        except Exception:
            await self._release(claimed)
            raise

        if new_email != old_email:
            await self._redis_delete(self.email_key_pattern.format(old_email))
        if identity_changed and existing.provider_external_id:
            await self._redis_delete(
                self.identity_key_pattern.format(
                    existing.provider.value, existing.provider_external_id
                )
            )

        logger.info(f"Updated user {user.id}")
        return user

    async def _release(self, keys: List[str]) -> None:
        """Delete keys written by a failed create/update.

        The caller re-raises the original error, so a failed delete is only
        logged here.
        """
        for key in keys:
            try:
                await self.redis.delete(key)
            except Exception as e:
                logger.error(f"Failed to release Redis key {key}: {e}")

    # Redis async wrapper methods
    async def _redis_set(self, key: str, value: str, nx: bool = False):
        """Set Redis key"""
        try:
            return await self.redis.set(key, value, nx=nx)
        except Exception as e:
            logger.error(f"Redis SET failed for key {key}: {e}")
            raise UserStoreError(f"Redis SET failed: {e}") from e

    async def _redis_get(self, key: str) -> Optional[str]:
        """Get Redis key value"""
        try:
            result = await self.redis.get(key)
        except Exception as e:
            logger.error(f"Redis GET failed for key {key}: {e}")
            raise UserStoreError(f"Redis GET failed: {e}") from e
        if isinstance(result, bytes):
            result = result.decode("utf-8")
        return result if result else None

    async def _redis_delete(self, key: str) -> None:
        """Delete Redis key"""
        try:
            await self.redis.delete(key)
        except Exception as e:
            logger.error(f"Redis DELETE failed for key {key}: {e}")
            raise UserStoreError(f"Redis DELETE failed: {e}") from e

    async def _redis_sadd(self, key: str, value: str) -> None:
        """Add to Redis set"""
        try:
            await self.redis.sadd(key, value)
        except Exception as e:
            logger.error(f"Redis SADD failed for key {key}: {e}")
            raise UserStoreError(f"Redis SADD failed: {e}") from e
