"""User store contract.

The identity reconciler only talks to persistence through these four
primitives. Implementations must make each primitive atomic for a single
record and must enforce email uniqueness on create.
"""

from abc import ABC, abstractmethod
from typing import Optional

from identity_service.domain.models import Provider, UserRecord


class UserStoreError(Exception):
    """User store operation failed."""
    pass


class EmailAlreadyRegisteredError(UserStoreError):
    """Another record already owns the email address."""

    def __init__(self, email: str):
        super().__init__(f"Email '{email}' already exists")
        self.email = email


class ExternalIdentityTakenError(UserStoreError):
    """Another record is already linked to the provider identity."""

    def __init__(self, provider: Provider, external_id: str):
        super().__init__(f"{provider.value} identity '{external_id}' is already linked")
        self.provider = provider
        self.external_id = external_id


class UserNotFoundError(UserStoreError):
    """Record to update does not exist."""

    def __init__(self, user_id: Optional[str]):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class UserStore(ABC):
    """Abstract user store.

    Records returned by a store are detached copies; callers mutate them and
    hand them back through update().
    """

    @abstractmethod
    async def find_by_provider_and_external_id(
        self, provider: Provider, external_id: str
    ) -> Optional[UserRecord]:
        """Look up a user by provider identity.

        Args:
            provider: Identity provider
            external_id: Provider-issued subject identifier

        Returns:
            UserRecord if found, None otherwise
        """
        pass

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        """Look up a user by email address (case-insensitive).

        Returns:
            UserRecord if found, None otherwise
        """
        pass

    @abstractmethod
    async def create(self, user: UserRecord) -> UserRecord:
        """Persist a new user and assign its id.

        Raises:
            EmailAlreadyRegisteredError: If the email is taken
            ExternalIdentityTakenError: If the provider identity is taken
        """
        pass

    @abstractmethod
    async def update(self, user: UserRecord) -> UserRecord:
        """Persist changes to an existing user.

        Raises:
            UserNotFoundError: If the user does not exist
            EmailAlreadyRegisteredError: If the new email is taken
            ExternalIdentityTakenError: If the new provider identity is taken
        """
        pass

    @abstractmethod
    async def get(self, user_id: str) -> Optional[UserRecord]:
        """Get user by id"""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Total number of stored users"""
        pass


def normalize_email(email: str) -> str:
    return email.strip().lower()
