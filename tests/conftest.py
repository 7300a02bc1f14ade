"""
Pytest configuration and fixtures for identity service tests.

Provides fixtures for:
- In-memory user store
- Raw provider attributes (Google, Kakao, Apple)
- Test HTTP client with dependency overrides
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from identity_service.api.routes.oauth import get_provider_availability, get_user_store
from identity_service.core.identity import ProviderAvailability
from identity_service.infrastructure.store import InMemoryUserStore
from identity_service.main import app


@pytest.fixture
def user_store() -> InMemoryUserStore:
    """Empty in-memory user store."""
    return InMemoryUserStore()


@pytest.fixture
def google_attributes() -> dict:
    """OIDC userinfo as returned by Google."""
    return {
        "sub": "google-sub-1",
        "name": "Jane Doe",
        "email": "jane@example.com",
        "picture": "https://example.com/jane.png",
        "email_verified": True,
    }


@pytest.fixture
def kakao_attributes() -> dict:
    """Kakao user info (nested properties/kakao_account)."""
    return {
        "id": 12345,
        "properties": {
            "nickname": "Kim",
            "profile_image": "https://example.com/kim.png",
        },
        "kakao_account": {"email": "kim@example.com"},
    }


@pytest.fixture
def apple_attributes() -> dict:
    """Apple ID token claims with the first-authorization name."""
    return {
        "sub": "apple-sub-1",
        "email": "apple@example.com",
        "name": {"firstName": "John", "lastName": "Doe"},
    }


@pytest.fixture
def availability() -> ProviderAvailability:
    """All OAuth providers enabled."""
    return ProviderAvailability.all()


@pytest_asyncio.fixture
async def client(
    user_store: InMemoryUserStore, availability: ProviderAvailability
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with user store and availability overrides."""

    async def override_get_user_store():
        return user_store

    app.dependency_overrides[get_user_store] = override_get_user_store
    app.dependency_overrides[get_provider_availability] = lambda: availability

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
