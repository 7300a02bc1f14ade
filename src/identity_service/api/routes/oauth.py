"""OAuth Routes

Purpose: FastAPI routes for provider logins

The hosting web layer completes the provider-specific OAuth dance and posts
the raw user attributes here; this service reconciles them into a local user.

Key Endpoints:
- GET /api/v1/oauth/providers: Provider availability for the login page
- POST /api/v1/oauth/{registration_id}/callback: Reconcile provider attributes
- GET /api/v1/oauth/success: Redirect to the post-login landing page
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse

from identity_service.config.settings import get_settings
from identity_service.core.identity import (
    IdentityError,
    IdentityService,
    MalformedClaimError,
    MissingEmailError,
    ProviderAvailability,
    ProviderConflictError,
    UnsupportedProviderError,
)
from identity_service.domain.models import (
    AuthError,
    PrincipalResponse,
    ProviderAvailabilityResponse,
)
from identity_service.infrastructure.redis.client import get_redis_client
from identity_service.infrastructure.store import InMemoryUserStore, RedisUserStore, UserStore

# Initialize router and logger
router = APIRouter(prefix="/api/v1/oauth", tags=["oauth"])
logger = logging.getLogger(__name__)

IDENTITY_ERROR_STATUS = {
    UnsupportedProviderError: 400,
    MalformedClaimError: 400,
    MissingEmailError: 422,
    ProviderConflictError: 409,
}

# Process-wide user store (created on first use)
_user_store: Optional[UserStore] = None


# Dependency injection functions
async def get_user_store() -> UserStore:
    """Get user store instance for the configured backend"""
    global _user_store
    if _user_store is None:
        settings = get_settings()
        if settings.user_store_backend == "redis":
            redis_client = await get_redis_client()
            _user_store = RedisUserStore(redis_client.get_client())
        else:
            _user_store = InMemoryUserStore()
        logger.info(f"User store initialized: {_user_store.__class__.__name__}")
    return _user_store


def reset_user_store() -> None:
    """Drop the process-wide user store"""
    global _user_store
    _user_store = None


def get_provider_availability() -> ProviderAvailability:
    """Providers enabled by configuration"""
    return ProviderAvailability.of(get_settings().enabled_providers())


async def get_identity_service(
    user_store: UserStore = Depends(get_user_store),
    availability: ProviderAvailability = Depends(get_provider_availability),
) -> IdentityService:
    """Get identity service instance"""
    return IdentityService(user_store, availability)


def identity_error_response(exc: IdentityError) -> JSONResponse:
    """Map a rejected login to its HTTP error response"""
    status_code = IDENTITY_ERROR_STATUS.get(type(exc), 401)
    details = None
    if isinstance(exc, ProviderConflictError):
        details = {"registered_provider": exc.existing_provider.value}
    body = AuthError(error=exc.error_code, message=exc.message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@router.get("/providers", response_model=ProviderAvailabilityResponse)
async def list_providers(
    availability: ProviderAvailability = Depends(get_provider_availability),
) -> ProviderAvailabilityResponse:
    """Report which OAuth providers can be used to log in"""
    return ProviderAvailabilityResponse(
        providers=availability.as_dict(),
        any_available=availability.any_available,
    )


@router.post(
    "/{registration_id}/callback",
    response_model=PrincipalResponse,
    responses={400: {"model": AuthError}, 409: {"model": AuthError}, 422: {"model": AuthError}},
)
async def oauth_callback(
    registration_id: str,
    request: Request,
    attributes: Dict[str, Any] = Body(...),
    identity_service: IdentityService = Depends(get_identity_service),
) -> PrincipalResponse:
    """Reconcile provider user attributes into a local user.

    Rejections (unsupported provider, malformed claims, missing email,
    provider conflict) are final for this login attempt.
    """
    correlation_id = getattr(request.state, "correlation_id", None)
    logger.debug(f"OAuth callback for {registration_id} (correlation: {correlation_id})")

    principal = await identity_service.authenticate(registration_id, attributes)
    return PrincipalResponse.from_principal(principal)


@router.get("/success")
async def oauth_success() -> RedirectResponse:
    """Send the browser to the landing page after a successful login"""
    target = get_settings().oauth_success_redirect
    return RedirectResponse(url=f"{target}?success=true", status_code=302)
