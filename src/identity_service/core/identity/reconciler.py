"""Identity reconciliation.

Maps a normalized provider claim onto a local user record. Decision order
(first match wins):

1. (provider, external id) already linked  -> update name/avatar
2. email known under another provider      -> reject (provider conflict)
3. email known under the same provider     -> relink the new external id
4. email unknown                           -> create the user

Each outcome writes one structured audit event. A reconcile call performs at
most one successful store write.
"""

import logging
from dataclasses import replace
from typing import Any, Mapping, Optional, Union

from identity_service.domain.models import (
    IdentityClaim,
    Principal,
    Provider,
    UserRecord,
    utc_now,
)
from identity_service.infrastructure.observability.formatter import RedactingLogFormatter
from identity_service.infrastructure.store.base import EmailAlreadyRegisteredError, UserStore

from .errors import MissingEmailError, ProviderConflictError

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("identity_service.audit")

OUTCOME_CREATED = "created"
OUTCOME_UPDATED = "updated"
OUTCOME_RELINKED = "relinked"
OUTCOME_CONFLICT = "conflict"

# create() attempts when a competing registration disappears again
CREATE_ATTEMPTS = 3


class IdentityReconciler:
    """Creates, updates, relinks or rejects users for provider claims"""

    def __init__(
        self,
        user_store: UserStore,
        formatter: Optional[RedactingLogFormatter] = None,
        audit_sink: Optional[logging.Logger] = None,
    ):
        """Initialize reconciler

        Args:
            user_store: Store used for all lookups and writes
            formatter: Formatter for audit events
            audit_sink: Logger receiving audit events
        """
        self.user_store = user_store
        self.formatter = formatter or RedactingLogFormatter()
        self.audit_sink = audit_sink or audit_logger

    async def reconcile(
        self,
        provider: Union[Provider, str],
        claim: IdentityClaim,
        attributes: Optional[Mapping[str, Any]] = None,
    ) -> Principal:
        """Reconcile a claim against the user store.

        Args:
            provider: Provider the user authenticated with
            claim: Normalized identity claim
            attributes: Raw provider attributes to expose on the principal

        Returns:
            Principal for the created or updated user

        Raises:
            MissingEmailError: If the claim has no email
            ProviderConflictError: If the email belongs to another provider
        """
        provider = Provider.from_string(provider)
        if not claim.has_email:
            logger.warning(f"Rejected {provider.value} login without email (external id {claim.external_id})")
            raise MissingEmailError(provider)

        user = await self.user_store.find_by_provider_and_external_id(provider, claim.external_id)
        if user is not None:
            user = await self._apply_claim(user, claim)
            self._audit(OUTCOME_UPDATED, provider, claim, user)
            return Principal.from_record(user, attributes)

        existing = await self.user_store.find_by_email(claim.email)
        attempt = 0
        while existing is None:
            attempt += 1
            try:
                user = await self._create(provider, claim)
            except EmailAlreadyRegisteredError:
                # Lost a concurrent first-login race; reconcile against the winner
                logger.info(f"Concurrent registration detected for {claim.email}")
                existing = await self.user_store.find_by_email(claim.email)
                # No winner means its create was rolled back; try again
                if existing is None and attempt >= CREATE_ATTEMPTS:
                    raise
            else:
                self._audit(OUTCOME_CREATED, provider, claim, user)
                return Principal.from_record(user, attributes)

        if existing.provider != provider:
            self._audit(OUTCOME_CONFLICT, provider, claim, existing, level="WARNING")
            raise ProviderConflictError(existing.provider)

        user = await self._apply_claim(existing, claim, relink=True)
        self._audit(OUTCOME_RELINKED, provider, claim, user)
        return Principal.from_record(user, attributes)

    async def _create(self, provider: Provider, claim: IdentityClaim) -> UserRecord:
        now = utc_now()
        user = UserRecord(
            name=claim.display_name,
            email=claim.email.strip(),
            provider=provider,
            provider_external_id=claim.external_id,
            avatar_url=claim.avatar_url,
            enabled=True,
            created_at=now,
            updated_at=now,
        )
        return await self.user_store.create(user)

    async def _apply_claim(self, user: UserRecord, claim: IdentityClaim, relink: bool = False) -> UserRecord:
        """Overwrite profile fields from the claim; email and provider never change"""
        changes = {
            "name": claim.display_name,
            "avatar_url": claim.avatar_url,
            "updated_at": utc_now(),
        }
        if relink:
            changes["provider_external_id"] = claim.external_id
        return await self.user_store.update(replace(user, **changes))

    def _audit(
        self,
        outcome: str,
        provider: Provider,
        claim: IdentityClaim,
        user: UserRecord,
        level: str = "INFO",
    ) -> None:
        self.formatter.emit(
            self.audit_sink,
            "identity_reconciliation",
            [
                ("action", f"oauth2_user_{outcome}"),
                ("outcome", outcome),
                ("user_id", user.id),
                ("email", claim.email),
                ("provider", provider.value),
                ("external_id", claim.external_id),
                ("registered_provider", user.provider.value if outcome == OUTCOME_CONFLICT else None),
            ],
            level=level,
        )
