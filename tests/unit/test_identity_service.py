"""Unit tests for IdentityService (provider callback orchestration)"""

import pytest

from identity_service.core.identity import (
    IdentityService,
    MalformedClaimError,
    MissingEmailError,
    ProviderAvailability,
    UnsupportedProviderError,
)
from identity_service.domain.models import Provider


@pytest.mark.unit
class TestAuthenticate:

    @pytest.mark.asyncio
    async def test_kakao_login_creates_user(self, user_store, kakao_attributes):
        service = IdentityService(user_store)

        principal = await service.authenticate("kakao", kakao_attributes)

        assert principal.provider == Provider.KAKAO
        assert principal.name == "Kim"
        assert principal.email == "kim@example.com"
        assert principal.attributes["id"] == 12345
        assert await user_store.count() == 1

    @pytest.mark.asyncio
    async def test_disabled_provider_is_unsupported(self, user_store, google_attributes):
        service = IdentityService(user_store, availability=ProviderAvailability.of([Provider.KAKAO]))

        with pytest.raises(UnsupportedProviderError) as exc_info:
            await service.authenticate("google", google_attributes)

        assert exc_info.value.registration_id == "google"
        assert await user_store.count() == 0

    @pytest.mark.asyncio
    async def test_local_registration_is_unsupported(self, user_store):
        service = IdentityService(user_store)

        with pytest.raises(UnsupportedProviderError):
            await service.authenticate("local", {"sub": "x", "email": "x@example.com"})

    @pytest.mark.asyncio
    async def test_unknown_registration_keeps_raw_name(self, user_store):
        service = IdentityService(user_store)

        with pytest.raises(UnsupportedProviderError) as exc_info:
            await service.authenticate("github", {"id": 1})

        assert "github" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_errors_propagate_unchanged(self, user_store):
        service = IdentityService(user_store)

        with pytest.raises(MalformedClaimError):
            await service.authenticate("apple", {"email": "a@example.com"})
        with pytest.raises(MissingEmailError):
            await service.authenticate("kakao", {"id": 5})
