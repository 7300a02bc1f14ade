"""Domain models for Identity Service"""

from identity_service.domain.models.api_identity import (
    AuthError,
    PrincipalResponse,
    ProviderAvailabilityResponse,
)
from identity_service.domain.models.exchange import ExchangeRecord, RedirectTrace
from identity_service.domain.models.identity import (
    IdentityClaim,
    Principal,
    Provider,
    UserRecord,
)
from identity_service.domain.models.timestamps import (
    parse_utc_timestamp,
    to_json_compatible,
    utc_now,
)

__all__ = [
    # Identity models
    "Provider",
    "IdentityClaim",
    "UserRecord",
    "Principal",
    # Exchange models
    "ExchangeRecord",
    "RedirectTrace",
    # API models
    "PrincipalResponse",
    "ProviderAvailabilityResponse",
    "AuthError",
    # Helpers
    "parse_utc_timestamp",
    "to_json_compatible",
    "utc_now",
]
