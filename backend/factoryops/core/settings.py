# backend/factoryops/core/settings.py
"""
FactoryOps - Configuration Management with pydantic-settings

- Loads from environment and root .env
- Validates and normalizes values
- Cached singleton via get_settings()
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional, List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# backend/factoryops/core/settings.py -> <repo>/.env
_ENV_FILE = Path(__file__).resolve().parent.parent.parent.parent / ".env"

QC_POLICIES = ("reject", "clamp")
POSTER_BACKENDS = ("ledger", "http")


class Settings(BaseSettings):
    """
    Application settings with validation.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===================
    # Application Settings
    # ===================
    PROJECT_NAME: str = "FactoryOps Purchasing"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    ENVIRONMENT: str = Field(default="development", description="Deployment environment")

    # ===================
    # Database Settings
    # ===================
    DB_HOST: str = Field(default="localhost", description="PostgreSQL host")
    DB_PORT: int = Field(default=5432, description="PostgreSQL port")
    DB_NAME: str = Field(default="factoryops", description="Database name")
    DB_USER: str = Field(default="postgres", description="Database user")
    DB_PASSWORD: str = Field(default="postgres", description="Database password")
    DATABASE_URL: Optional[str] = Field(
        default=None, description="Full database URL (overrides DB_* settings)"
    )

    @property
    def database_url(self) -> str:
        """Build PostgreSQL database URL from components or use explicit URL."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    # ===================
    # CORS Settings
    # ===================
    ALLOWED_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        description="Allowed CORS origins",
    )

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    FRONTEND_URL: str = Field(
        default="http://localhost:5173", description="Frontend URL for redirects"
    )

    @model_validator(mode="after")
    def add_frontend_url_to_cors(self):
        """Ensure FRONTEND_URL is allowed for CORS."""
        if self.FRONTEND_URL and self.FRONTEND_URL not in self.ALLOWED_ORIGINS:
            self.ALLOWED_ORIGINS = list(self.ALLOWED_ORIGINS) + [self.FRONTEND_URL]
        return self

    # ===================
    # Logging
    # ===================
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")
    LOG_FORMAT: str = Field(default="json", description="'json' or 'text'")

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = (v or "INFO").strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unsupported LOG_LEVEL '{v}'")
        return level

    @field_validator("LOG_FORMAT")
    @classmethod
    def normalize_log_format(cls, v: str) -> str:
        fmt = (v or "json").strip().lower()
        if fmt not in ("json", "text"):
            raise ValueError("LOG_FORMAT must be 'json' or 'text'")
        return fmt

    # ===================
    # Receiving / QC
    # ===================
    QC_OUT_OF_RANGE_POLICY: str = Field(
        default="reject",
        description="How to treat defective quantities outside [0, received]: 'reject' or 'clamp'",
    )
    ORDER_LOCK_TIMEOUT_SECONDS: float = Field(
        default=10.0, gt=0, description="Max wait for the per-order lock"
    )

    @field_validator("QC_OUT_OF_RANGE_POLICY")
    @classmethod
    def normalize_qc_policy(cls, v: str) -> str:
        policy = (v or "").strip().lower()
        if policy not in QC_POLICIES:
            raise ValueError(f"QC_OUT_OF_RANGE_POLICY must be one of {QC_POLICIES}")
        return policy

    # ===================
    # Inventory Posting
    # ===================
    INVENTORY_POSTER: str = Field(
        default="ledger", description="'ledger' (local raw material stock) or 'http'"
    )
    INVENTORY_POSTER_URL: Optional[str] = Field(
        default=None, description="Base URL of the stock ledger service (http poster)"
    )
    INVENTORY_POSTING_TIMEOUT_SECONDS: float = Field(
        default=5.0, gt=0, description="Timeout for a single stock credit call"
    )

    @field_validator("INVENTORY_POSTER")
    @classmethod
    def normalize_poster(cls, v: str) -> str:
        backend = (v or "").strip().lower()
        if backend not in POSTER_BACKENDS:
            raise ValueError(f"INVENTORY_POSTER must be one of {POSTER_BACKENDS}")
        return backend

    @model_validator(mode="after")
    def require_poster_url(self):
        if self.INVENTORY_POSTER == "http" and not self.INVENTORY_POSTER_URL:
            raise ValueError("INVENTORY_POSTER_URL is required when INVENTORY_POSTER=http")
        return self

    # ===================
    # API
    # ===================
    DEFAULT_PAGE_SIZE: int = Field(default=50, ge=1, le=500)


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
