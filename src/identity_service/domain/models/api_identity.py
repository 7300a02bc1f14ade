"""Identity API Models

Purpose: Request/response models for the OAuth endpoints

This module provides Pydantic models for the OAuth callback and provider
availability endpoints. These models keep the API contract stable and
independent from the internal dataclasses.

Key Components:
- PrincipalResponse: Authenticated user returned after a callback
- ProviderAvailabilityResponse: Which providers can be used to log in
- AuthError: Structured error responses
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from identity_service.domain.models.identity import Principal


class PrincipalResponse(BaseModel):
    """Authenticated principal returned to the client

    Raw provider attributes are not echoed back.
    """

    user_id: str = Field(
        ..., description="Unique user identifier", examples=["550e8400-e29b-41d4-a716-446655440000"]
    )
    display_name: str = Field(..., description="Display name", examples=["John Doe"])
    email: str = Field(..., description="Email address", examples=["john.doe@example.com"])
    provider: str = Field(..., description="Identity provider", examples=["google"])
    avatar_url: Optional[str] = Field(
        None, description="Profile image URL", examples=["https://example.com/avatar.png"]
    )

    @classmethod
    def from_principal(cls, principal: Principal) -> "PrincipalResponse":
        return cls(
            user_id=principal.id,
            display_name=principal.display_name,
            email=principal.email,
            provider=principal.provider.value,
            avatar_url=principal.avatar_url,
        )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "user_id": "550e8400-e29b-41d4-a716-446655440000",
                    "display_name": "John Doe",
                    "email": "john.doe@example.com",
                    "provider": "google",
                    "avatar_url": "https://example.com/avatar.png",
                }
            ]
        }
    }


class ProviderAvailabilityResponse(BaseModel):
    """Login provider availability"""

    providers: Dict[str, bool] = Field(
        ..., description="Availability per provider", examples=[{"google": True, "kakao": False}]
    )
    any_available: bool = Field(..., description="Whether any OAuth provider can be used")


class AuthError(BaseModel):
    """Structured authentication error response"""

    error: str = Field(..., description="Error code", examples=["provider_conflict"])
    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Email already registered with Google provider. Please login with Google account."],
    )
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")
