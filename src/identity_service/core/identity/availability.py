"""Provider availability.

Which providers may be used for login is decided by configuration (see
Settings.enabled_providers). The core only receives the resulting set.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable

from identity_service.domain.models import Provider

OAUTH_PROVIDERS = (Provider.GOOGLE, Provider.KAKAO, Provider.APPLE)


@dataclass(frozen=True)
class ProviderAvailability:
    """Set of OAuth providers enabled for login"""

    enabled: FrozenSet[Provider] = field(default_factory=frozenset)

    @classmethod
    def of(cls, providers: Iterable[Provider]) -> "ProviderAvailability":
        return cls(enabled=frozenset(Provider.from_string(p) for p in providers))

    @classmethod
    def all(cls) -> "ProviderAvailability":
        return cls(enabled=frozenset(OAUTH_PROVIDERS))

    def is_available(self, provider: Provider) -> bool:
        return provider in self.enabled

    @property
    def any_available(self) -> bool:
        return any(provider in self.enabled for provider in OAUTH_PROVIDERS)

    def as_dict(self) -> Dict[str, bool]:
        return {provider.value: provider in self.enabled for provider in OAUTH_PROVIDERS}
