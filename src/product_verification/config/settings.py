"""
Application settings and configuration management.
"""

from functools import lru_cache
from typing import Annotated, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application Configuration
    app_env: str = Field("development", description="Application environment")
    debug: bool = Field(False, description="Debug mode")

    # Database Configuration
    database_url: str = Field(
        "sqlite+aiosqlite:///./product_verification.db",
        description="Async SQLAlchemy connection URL"
    )
    database_echo: bool = Field(False, description="Echo SQL statements")

    # Store behaviour
    store_timeout_seconds: float = Field(5.0, gt=0, description="Upper bound for a single store operation")
    store_read_retries: int = Field(3, ge=0, description="Retries for idempotent reads on transient failures")
    store_retry_backoff_seconds: float = Field(0.05, ge=0, description="Base delay between read retries")
    scan_cas_max_attempts: int = Field(16, ge=1, description="Conditional update attempts per scan")

    # Product defaults
    default_scan_budget: int = Field(2, ge=1, description="Scan budget given to new products")

    # QR Configuration
    public_base_url: str = Field(
        "http://localhost:3000",
        description="Public frontend URL embedded in QR payloads"
    )

    # API Configuration
    api_v1_prefix: str = Field("/api/v1", description="API v1 prefix")
    cors_origins: Annotated[List[str], NoDecode] = Field(
        ["http://localhost:3000"],
        description="CORS allowed origins"
    )
    admin_api_token: Optional[str] = Field(
        None,
        description="Bearer token for admin endpoints; admin endpoints are open when unset"
    )

    # Bulk import
    max_upload_size_mb: int = Field(5, gt=0, description="Maximum spreadsheet upload size")
    allowed_upload_extensions: Annotated[List[str], NoDecode] = Field(
        [".xlsx", ".xls", ".csv"],
        description="Accepted spreadsheet extensions"
    )
    import_error_limit: int = Field(10, ge=0, description="Diagnostics returned per import")

    # Logging Configuration
    log_level: str = Field("INFO", description="Logging level")

    @field_validator("cors_origins", "allowed_upload_extensions", mode="before")
    @classmethod
    def split_comma_separated(cls, value):
        """Accept comma-separated strings for list settings."""
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("allowed_upload_extensions")
    @classmethod
    def normalize_extensions(cls, value: List[str]) -> List[str]:
        """Lowercase extensions and make sure they carry a leading dot."""
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in value]

    @property
    def max_upload_size_bytes(self) -> int:
        """Upload cap in bytes."""
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def is_sqlite(self) -> bool:
        """Whether the configured database is SQLite."""
        return self.database_url.startswith("sqlite")


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
