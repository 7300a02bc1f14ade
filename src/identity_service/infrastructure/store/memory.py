"""In-process user store.

Used for development, single-instance deployments and tests. All indexes are
updated under one asyncio.Lock so create/update are atomic per record.
"""

import asyncio
import logging
import uuid
from dataclasses import replace
from typing import Dict, Optional, Tuple

from identity_service.domain.models import Provider, UserRecord

from .base import (
    EmailAlreadyRegisteredError,
    ExternalIdentityTakenError,
    UserNotFoundError,
    UserStore,
    normalize_email,
)

logger = logging.getLogger(__name__)


class InMemoryUserStore(UserStore):
    """Dictionary-backed user store"""

    def __init__(self):
        self._users: Dict[str, UserRecord] = {}
        self._by_email: Dict[str, str] = {}
        self._by_identity: Dict[Tuple[Provider, str], str] = {}
        self._lock = asyncio.Lock()

    async def find_by_provider_and_external_id(
        self, provider: Provider, external_id: str
    ) -> Optional[UserRecord]:
        if not external_id:
            return None
        user_id = self._by_identity.get((provider, external_id))
        return await self.get(user_id) if user_id else None

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        if not email:
            return None
        user_id = self._by_email.get(normalize_email(email))
        return await self.get(user_id) if user_id else None

    async def get(self, user_id: str) -> Optional[UserRecord]:
        user = self._users.get(user_id)
        return replace(user) if user else None

    async def count(self) -> int:
        return len(self._users)

    async def create(self, user: UserRecord) -> UserRecord:
        async with self._lock:
            email_key = normalize_email(user.email)
            if email_key in self._by_email:
                raise EmailAlreadyRegisteredError(user.email)

            identity_key = self._identity_key(user)
            if identity_key and identity_key in self._by_identity:
                raise ExternalIdentityTakenError(user.provider, user.provider_external_id)

            stored = replace(user, id=str(uuid.uuid4()))
            self._users[stored.id] = stored
            self._by_email[email_key] = stored.id
            if identity_key:
                self._by_identity[identity_key] = stored.id

        logger.info(f"Created user {stored.id} ({stored.provider.value})")
        return replace(stored)

    async def update(self, user: UserRecord) -> UserRecord:
        async with self._lock:
            existing = self._users.get(user.id) if user.id else None
            if existing is None:
                raise UserNotFoundError(user.id)

            old_email = normalize_email(existing.email)
            new_email = normalize_email(user.email)
            if new_email != old_email and new_email in self._by_email:
                raise EmailAlreadyRegisteredError(user.email)

            old_identity = self._identity_key(existing)
            new_identity = self._identity_key(user)
            if (
                new_identity
                and new_identity != old_identity
                and self._by_identity.get(new_identity, user.id) != user.id
            ):
                raise ExternalIdentityTakenError(user.provider, user.provider_external_id)

            if new_email != old_email:
                del self._by_email[old_email]
                self._by_email[new_email] = user.id
            if new_identity != old_identity:
                if old_identity:
                    self._by_identity.pop(old_identity, None)
                if new_identity:
                    self._by_identity[new_identity] = user.id

            stored = replace(user)
            self._users[user.id] = stored

        logger.info(f"Updated user {stored.id}")
        return replace(stored)

    @staticmethod
    def _identity_key(user: UserRecord) -> Optional[Tuple[Provider, str]]:
        if not user.provider_external_id:
            return None
        return (user.provider, user.provider_external_id)
