"""Provider identity handling.

- claims: provider attribute normalization
- reconciler: claim-to-user reconciliation
- service: login orchestration for provider callbacks
"""

from .availability import ProviderAvailability
from .claims import ClaimNormalizer
from .errors import (
    IdentityError,
    MalformedClaimError,
    MissingEmailError,
    ProviderConflictError,
    UnsupportedProviderError,
)
from .reconciler import IdentityReconciler
from .service import IdentityService

__all__ = [
    "ClaimNormalizer",
    "IdentityReconciler",
    "IdentityService",
    "ProviderAvailability",
    "IdentityError",
    "UnsupportedProviderError",
    "MalformedClaimError",
    "MissingEmailError",
    "ProviderConflictError",
]
