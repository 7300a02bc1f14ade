"""Configuration Settings for Identity Service

Manages environment variables and application configuration.
"""

from functools import lru_cache
from typing import FrozenSet, Optional

from pydantic_settings import BaseSettings

from identity_service.domain.models import Provider

DISABLED = "disabled"


def _configured(value: Optional[str]) -> bool:
    return bool(value) and value.strip().lower() != DISABLED


class Settings(BaseSettings):
    """Application settings"""

    # Service info
    service_name: str = "identity-service"
    service_version: str = "1.0.0"
    environment: str = "development"

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # User store backend: memory or redis
    user_store_backend: str = "memory"

    # Redis configuration
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None

    @property
    def redis_url(self) -> str:
        """Construct Redis URL from components"""
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # OAuth client registrations ("disabled" turns a provider off)
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    kakao_client_id: Optional[str] = None
    kakao_client_secret: Optional[str] = None
    apple_client_id: Optional[str] = None
    apple_client_secret: Optional[str] = None

    # Where the browser lands after a successful OAuth login
    oauth_success_redirect: str = "/dashboard"

    # CORS configuration
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_body_max_length: int = 1000
    enable_exchange_logging: bool = True

    def enabled_providers(self) -> FrozenSet[Provider]:
        """Providers whose client id and secret are both configured"""
        registrations = {
            Provider.GOOGLE: (self.google_client_id, self.google_client_secret),
            Provider.KAKAO: (self.kakao_client_id, self.kakao_client_secret),
            Provider.APPLE: (self.apple_client_id, self.apple_client_secret),
        }
        return frozenset(
            provider
            for provider, (client_id, client_secret) in registrations.items()
            if _configured(client_id) and _configured(client_secret)
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance

    Returns:
        Settings instance
    """
    return Settings()
