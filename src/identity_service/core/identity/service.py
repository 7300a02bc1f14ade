"""OAuth login orchestration.

Runs one provider callback through availability check, claim normalization
and reconciliation.
"""

import logging
from typing import Any, Mapping, Optional

from identity_service.domain.models import Principal, Provider
from identity_service.infrastructure.store.base import UserStore

from .availability import ProviderAvailability
from .claims import ClaimNormalizer
from .errors import IdentityError, UnsupportedProviderError
from .reconciler import IdentityReconciler

logger = logging.getLogger(__name__)


class IdentityService:
    """Authenticates provider callbacks into principals"""

    def __init__(
        self,
        user_store: UserStore,
        availability: Optional[ProviderAvailability] = None,
        normalizer: Optional[ClaimNormalizer] = None,
        reconciler: Optional[IdentityReconciler] = None,
    ):
        self.availability = availability if availability is not None else ProviderAvailability.all()
        self.normalizer = normalizer or ClaimNormalizer()
        self.reconciler = reconciler or IdentityReconciler(user_store)

    async def authenticate(self, registration_id: str, raw_attributes: Mapping[str, Any]) -> Principal:
        """Authenticate a provider callback.

        Args:
            registration_id: Provider registration identifier (e.g. "kakao")
            raw_attributes: User attributes returned by the provider

        Returns:
            Principal of the reconciled user

        Raises:
            IdentityError: If the login is rejected (never retried)
        """
        provider = Provider.from_string(registration_id)
        if provider is Provider.LOCAL or not self.availability.is_available(provider):
            logger.warning(f"Login attempted with unavailable provider '{registration_id}'")
            raise UnsupportedProviderError(registration_id)

        try:
            claim = self.normalizer.normalize(provider, raw_attributes)
            principal = await self.reconciler.reconcile(provider, claim, raw_attributes)
        except IdentityError as e:
            logger.info(f"OAuth login rejected ({e.error_code}) for provider {provider.value}")
            raise

        logger.info(f"OAuth2 authentication successful for user: {principal.id}")
        return principal
