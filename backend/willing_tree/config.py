"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Willing Tree"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    # database_url_override (e.g. a hosted Postgres URL with sslmode=require)
    # wins over the individual connection parts
    database_url_override: str | None = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "willing_tree"
    postgres_password: str = ""
    postgres_db: str = "willing_tree"

    def _url_for(self, driver: str) -> str:
        """Database URL with the given scheme, from the override or the parts."""
        if not self.database_url_override:
            return (
                f"{driver}{self.postgres_user}:{self.postgres_password}"
                f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
            )
        url = self.database_url_override
        for scheme in ("postgresql+asyncpg://", "postgresql://", "postgres://"):
            if url.startswith(scheme):
                return driver + url[len(scheme):]
        return url

    @computed_field
    @property
    def database_url(self) -> str:
        """asyncpg URL for the app. Query params are dropped, SSL goes through connect_args."""
        return self._url_for("postgresql+asyncpg://").split("?")[0]

    @computed_field
    @property
    def database_requires_ssl(self) -> bool:
        override = self.database_url_override or ""
        return "sslmode=require" in override or "ssl=require" in override

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """psycopg2 URL for Alembic, query params kept."""
        return self._url_for("postgresql://")

    # Auth / JWT (tokens are issued by the account service, we only verify them)
    jwt_secret_key: str  # Required - no default, must be set in .env
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7  # 7 days

    # CORS
    cors_origins: list[str] = ["http://localhost:5173"]

    # Cookies
    # Set to true when frontend and backend are on different domains
    cookie_cross_domain: bool = False

    # Weekly cycle
    cycle_length_weeks: int = 12
    # "clamp" caps each relationship's completed weeks at cycle_length_weeks
    # when computing growth; "allow" lets the percentage exceed 100
    progress_overflow: Literal["clamp", "allow"] = "clamp"

    # Subscription capability gate
    # While billing is disabled every user gets the premium plan limits
    billing_enabled: bool = False
    free_max_innermosts: int = 1
    premium_max_innermosts: int = 3


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def sanitize_error(error: Exception, *, generic_message: str = "An internal error occurred.") -> str:
    """
    Return a user-safe error message.

    In development, returns the full exception string for debugging.
    In staging/production, returns a generic message to avoid leaking internals.
    """
    settings = get_settings()
    if settings.environment == "development":
        return str(error)
    return generic_message
