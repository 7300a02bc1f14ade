"""Identity Data Models

Purpose: Define data structures for provider identities and local users

This module provides the core data models for the Identity Service.

Key Components:
- Provider: Enum of supported identity providers
- IdentityClaim: Normalized identity asserted by a provider for one login
- UserRecord: Local user account owned by the user store
- Principal: Read-only projection handed to the web layer after login
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from identity_service.domain.models.timestamps import parse_utc_timestamp, to_json_compatible


class Provider(Enum):
    """Identity provider a user account is registered with"""
    LOCAL = "local"
    GOOGLE = "google"
    APPLE = "apple"
    KAKAO = "kakao"

    @classmethod
    def from_string(cls, text: Optional[str]) -> "Provider":
        """Resolve a registration identifier to a provider.

        Matching is case-insensitive. Unknown or missing identifiers
        resolve to LOCAL.
        """
        if isinstance(text, Provider):
            return text
        if text:
            normalized = str(text).strip().lower()
            for provider in cls:
                if provider.value == normalized:
                    return provider
        return cls.LOCAL

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class IdentityClaim:
    """Provider-asserted identity for a single authentication attempt

    Attributes:
        external_id: Provider-specific subject identifier
        display_name: Name to show for the user
        email: Email address (some providers may omit it)
        avatar_url: Profile image URL (optional)
    """
    external_id: str
    display_name: str
    email: Optional[str] = None
    avatar_url: Optional[str] = None

    @property
    def has_email(self) -> bool:
        return bool(self.email and self.email.strip())


@dataclass
class UserRecord:
    """Local user account

    Attributes:
        id: Opaque identifier assigned by the user store
        name: Display name
        email: Email address (unique across all records)
        provider: Provider the account is registered with
        provider_external_id: Subject identifier issued by the provider
        avatar_url: Profile image URL
        enabled: Account enabled status
        created_at: Account creation timestamp
        updated_at: Last modification timestamp
    """
    name: str
    email: str
    provider: Provider = Provider.LOCAL
    provider_external_id: Optional[str] = None
    avatar_url: Optional[str] = None
    enabled: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    id: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "provider": self.provider.value,
            "provider_external_id": self.provider_external_id,
            "avatar_url": self.avatar_url,
            "enabled": self.enabled,
            "created_at": to_json_compatible(self.created_at),
            "updated_at": to_json_compatible(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UserRecord":
        """Create from dictionary (JSON deserialization)"""
        return cls(
            id=data.get("id"),
            name=data["name"],
            email=data["email"],
            provider=Provider.from_string(data.get("provider")),
            provider_external_id=data.get("provider_external_id"),
            avatar_url=data.get("avatar_url"),
            enabled=data.get("enabled", True),
            created_at=parse_utc_timestamp(data["created_at"]) if data.get("created_at") else None,
            updated_at=parse_utc_timestamp(data["updated_at"]) if data.get("updated_at") else None,
        )


@dataclass(frozen=True)
class Principal:
    """Authenticated user handed to the web layer

    Built once per successful reconciliation and never persisted.

    Attributes:
        id: User record identifier
        name: Display name
        email: Email address
        provider: Provider used for this login
        avatar_url: Profile image URL
        attributes: Raw provider attributes (read-only)
    """
    id: str
    name: str
    email: str
    provider: Provider
    avatar_url: Optional[str] = None
    attributes: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @property
    def display_name(self) -> str:
        return self.name

    @classmethod
    def from_record(cls, user: UserRecord, attributes: Optional[Mapping[str, Any]] = None) -> "Principal":
        """Project a user record into a principal"""
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            provider=user.provider,
            avatar_url=user.avatar_url,
            attributes=MappingProxyType(dict(attributes or {})),
        )
