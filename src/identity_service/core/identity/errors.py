"""Identity reconciliation errors.

Every error here is terminal for the authentication attempt. None of them
is transient, so callers must surface them as a rejected login instead of
retrying.
"""

from typing import Optional

from identity_service.domain.models import Provider


class IdentityError(Exception):
    """Authentication attempt rejected."""

    error_code = "authentication_failed"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnsupportedProviderError(IdentityError):
    """No claim mapping is registered (or enabled) for the provider."""

    error_code = "unsupported_provider"

    def __init__(self, registration_id: Optional[str]):
        super().__init__(f"Sorry! Login with {registration_id} is not supported yet.")
        self.registration_id = registration_id


class MalformedClaimError(IdentityError):
    """Provider attributes lack a required identity field."""

    error_code = "malformed_claim"

    def __init__(self, provider: Provider, field_name: str):
        super().__init__(f"{provider.display_name} response is missing required attribute '{field_name}'")
        self.provider = provider
        self.field_name = field_name


class MissingEmailError(IdentityError):
    """Provider did not share an email address."""

    error_code = "email_required"

    def __init__(self, provider: Provider):
        super().__init__("Email not found from OAuth2 provider")
        self.provider = provider


class ProviderConflictError(IdentityError):
    """Email already belongs to an account registered with another provider."""

    error_code = "provider_conflict"

    def __init__(self, existing_provider: Provider):
        name = existing_provider.display_name
        super().__init__(
            f"Email already registered with {name} provider. Please login with {name} account."
        )
        self.existing_provider = existing_provider
