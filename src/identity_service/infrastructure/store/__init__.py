"""User store implementations.

- memory: in-process dictionaries (development, tests)
- redis: JSON records in Redis with unique email and identity indexes
"""

from .base import (
    EmailAlreadyRegisteredError,
    ExternalIdentityTakenError,
    UserNotFoundError,
    UserStore,
    UserStoreError,
)
from .memory import InMemoryUserStore
from .redis_store import RedisUserStore

__all__ = [
    "UserStore",
    "UserStoreError",
    "EmailAlreadyRegisteredError",
    "ExternalIdentityTakenError",
    "UserNotFoundError",
    "InMemoryUserStore",
    "RedisUserStore",
]
