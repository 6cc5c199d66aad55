"""Application configuration using pydantic-settings."""
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Account client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Store API (edge function backend)
    api_url: str = Field(default="http://localhost:8000", validation_alias="STORE_API_URL")
    api_anon_key: str = Field(default="", validation_alias="STORE_ANON_KEY")
    api_timeout: float = Field(default=30.0, validation_alias="STORE_API_TIMEOUT")

    # Auth server (GoTrue-compatible token endpoints)
    auth_url: str = Field(default="http://localhost:9999", validation_alias="AUTH_URL")

    # Refresh the access token when it expires within this many seconds
    token_refresh_margin: int = Field(default=60, validation_alias="TOKEN_REFRESH_MARGIN")

    # Postal-code lookup (ViaCEP)
    postal_lookup_url: str = Field(
        default="https://viacep.com.br/ws", validation_alias="POSTAL_LOOKUP_URL",
    )

    # Local persistent cache (profile snapshot, recovery ids)
    local_cache_path: str = Field(
        default=".account_cache.json", validation_alias="LOCAL_CACHE_PATH",
    )

    # Client-side read cache for GET /auth/user/me
    me_cache_ttl: int = Field(default=30, validation_alias="ME_CACHE_TTL")

    # Limits shared with the store API
    max_addresses: int = Field(default=10, validation_alias="MAX_ADDRESSES")
    max_avatar_bytes: int = Field(default=2 * 1024 * 1024, validation_alias="MAX_AVATAR_BYTES")

    @model_validator(mode="after")
    def validate_positive_limits(self) -> "Settings":
        """Reject limits that would make every mutation fail client-side."""
        if self.max_addresses < 1:
            raise ValueError("MAX_ADDRESSES must be at least 1.")
        if self.max_avatar_bytes < 1:
            raise ValueError("MAX_AVATAR_BYTES must be at least 1.")
        if self.token_refresh_margin < 0:
            raise ValueError("TOKEN_REFRESH_MARGIN cannot be negative.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
