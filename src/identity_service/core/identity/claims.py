"""Provider claim normalization.

Each identity provider returns user attributes in its own shape. This module
maps them to a uniform IdentityClaim through a table of pure extraction
functions keyed by Provider.

Supported shapes:
- Google (OIDC): sub, name, email, picture
- Kakao: id, properties.{nickname, profile_image}, kakao_account.email
- Apple: sub, email, name (string or {firstName, lastName})
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Union

from identity_service.domain.models import IdentityClaim, Provider

from .errors import MalformedClaimError, UnsupportedProviderError

logger = logging.getLogger(__name__)

KAKAO_DEFAULT_NAME = "Kakao User"
APPLE_DEFAULT_NAME = "Apple User"


def _text(value: Any) -> Optional[str]:
    """Return value as a string, or None when it is absent or not scalar."""
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return None
    return str(value)


def _section(attributes: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = attributes.get(key)
    return value if isinstance(value, Mapping) else {}


def _require(provider: Provider, attributes: Mapping[str, Any], key: str) -> str:
    value = attributes.get(key)
    if isinstance(value, bool):
        value = None
    value = _text(value)
    if value is None or not value.strip():
        raise MalformedClaimError(provider, key)
    return value


def _google_claim(attributes: Mapping[str, Any]) -> IdentityClaim:
    return IdentityClaim(
        external_id=_require(Provider.GOOGLE, attributes, "sub"),
        display_name=_text(attributes.get("name")) or "",
        email=_text(attributes.get("email")),
        avatar_url=_text(attributes.get("picture")),
    )


def _kakao_claim(attributes: Mapping[str, Any]) -> IdentityClaim:
    properties = _section(attributes, "properties")
    account = _section(attributes, "kakao_account")
    nickname = _text(properties.get("nickname"))
    return IdentityClaim(
        external_id=_require(Provider.KAKAO, attributes, "id"),
        display_name=nickname if nickname is not None else KAKAO_DEFAULT_NAME,
        email=_text(account.get("email")),
        avatar_url=_text(properties.get("profile_image")),
    )


def _apple_name(raw_name: Any) -> str:
    # Apple only sends the name on the first authorization
    if isinstance(raw_name, Mapping):
        first = _text(raw_name.get("firstName")) or ""
        last = _text(raw_name.get("lastName")) or ""
        full_name = f"{first} {last}".strip()
        return full_name or APPLE_DEFAULT_NAME
    name = _text(raw_name)
    if name and name.strip():
        return name
    return APPLE_DEFAULT_NAME


def _apple_claim(attributes: Mapping[str, Any]) -> IdentityClaim:
    return IdentityClaim(
        external_id=_require(Provider.APPLE, attributes, "sub"),
        display_name=_apple_name(attributes.get("name")),
        email=_text(attributes.get("email")),
        avatar_url=None,
    )


ClaimExtractor = Callable[[Mapping[str, Any]], IdentityClaim]

CLAIM_EXTRACTORS: Dict[Provider, ClaimExtractor] = {
    Provider.GOOGLE: _google_claim,
    Provider.KAKAO: _kakao_claim,
    Provider.APPLE: _apple_claim,
}


class ClaimNormalizer:
    """Converts provider-specific attributes into an IdentityClaim.

    Local accounts never pass through here; LOCAL (and therefore any unknown
    registration id) has no extractor and is rejected.
    """

    def __init__(self, extractors: Optional[Dict[Provider, ClaimExtractor]] = None):
        self.extractors = dict(extractors if extractors is not None else CLAIM_EXTRACTORS)

    def supports(self, provider: Provider) -> bool:
        return provider in self.extractors

    def normalize(
        self,
        provider: Union[Provider, str],
        raw_attributes: Mapping[str, Any],
    ) -> IdentityClaim:
        """Normalize raw provider attributes.

        Args:
            provider: Provider or registration identifier (e.g. "google")
            raw_attributes: Attributes returned by the provider

        Returns:
            IdentityClaim with a non-empty external_id

        Raises:
            UnsupportedProviderError: If no mapping exists for the provider
            MalformedClaimError: If the attributes lack the external id
        """
        resolved = Provider.from_string(provider)
        extractor = self.extractors.get(resolved)
        if extractor is None:
            raw_name = provider.value if isinstance(provider, Provider) else provider
            logger.warning(f"No claim mapping for provider '{raw_name}'")
            raise UnsupportedProviderError(raw_name)

        if not isinstance(raw_attributes, Mapping):
            raise MalformedClaimError(resolved, "attributes")

        claim = extractor(raw_attributes)
        logger.debug(f"Normalized {resolved.value} claim for external id {claim.external_id}")
        return claim
