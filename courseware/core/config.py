# Fichier: courseware/core/config.py
from pydantic_settings import BaseSettings
from typing import List
from pydantic import ValidationError, field_validator
import sys

# Sync engine only: every Postgres URL is pinned to the psycopg2 driver.
POSTGRES_DRIVER_SCHEME = "postgresql+psycopg2://"
_BARE_POSTGRES_SCHEMES = ("postgres://", "postgresql://")


def normalize_database_url(url: str) -> str:
    """Pin bare ``postgres://`` / ``postgresql://`` URLs to psycopg2.

    URLs naming a driver (``postgresql+psycopg2://``...) and non Postgres
    URLs are returned unchanged.
    """
    for scheme in _BARE_POSTGRES_SCHEMES:
        if url.startswith(scheme):
            return POSTGRES_DRIVER_SCHEME + url[len(scheme):]
    return url


class Settings(BaseSettings):
    DATABASE_URL: str
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:8000",
        "http://127.0.0.1:5173",
    ]

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Database instrumentation
    SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS: int = 300
    DATABASE_CONNECTION_MAX_RETRIES: int = 3
    DATABASE_CONNECTION_RETRY_BACKOFF_SECONDS: float = 1.0

    class Config:
        env_file = ".env"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def _normalize_database_url(cls, value):
        if isinstance(value, str):
            return normalize_database_url(value)
        return value


def _report_invalid_settings(exc: ValidationError) -> None:
    """List each missing or invalid variable on stderr, one per line."""
    print("courseware: invalid configuration", file=sys.stderr)
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "<settings>"
        print(f"  {field}: {error.get('msg', 'invalid value')}", file=sys.stderr)


try:
    settings = Settings()
except ValidationError as exc:  # pragma: no cover - exercised at runtime
    _report_invalid_settings(exc)
    raise
