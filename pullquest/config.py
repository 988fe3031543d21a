"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_BASE_URL = "http://localhost:8012"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # App
    app_env: Literal["development", "production", "test"] = "development"
    app_secret_key: str

    @field_validator("app_secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Ensure secret key is strong enough."""
        if len(v) < 32:
            raise ValueError("APP_SECRET_KEY must be at least 32 characters long")
        if v == "change-me-to-a-secure-random-string":
            raise ValueError("APP_SECRET_KEY must be changed from the default value")
        return v

    app_url: str = "http://localhost:8080"
    app_name: str = "Pull Quest"

    # Backend API (credential check + GitHub OAuth)
    api_base_url: str = DEFAULT_API_BASE_URL
    login_timeout_seconds: float = 10.0

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v: str) -> str:
        """Fall back to the local backend when unset and drop trailing slashes."""
        v = v.strip()
        if not v:
            return DEFAULT_API_BASE_URL
        return v.rstrip("/")

    @field_validator("login_timeout_seconds")
    @classmethod
    def validate_login_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("LOGIN_TIMEOUT_SECONDS must be positive")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def login_api_url(self) -> str:
        """Endpoint that verifies role, email and password."""
        return f"{self.api_base_url}/auth/login"

    @property
    def github_oauth_url(self) -> str:
        """Endpoint that starts the GitHub OAuth redirect."""
        return f"{self.api_base_url}/auth/github"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]
