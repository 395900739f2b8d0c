from functools import lru_cache
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Runtime settings for connectors, the content store and the panel registry."""

    CONNECTOR_POOL_SIZE: int = 10
    CONNECTOR_CACHE_SIZE: int = 32

    MINIO_ENDPOINT: str = "localhost:9000"
    MINIO_ACCESS_KEY: str = "minioadmin"
    MINIO_SECRET_KEY: str = "minioadmin"
    MINIO_BUCKET: str = "sqlpanel-reports"
    MINIO_SECURE: bool = False
    MINIO_PUBLIC_BASE_URL: Optional[str] = None
    MINIO_OBJECT_PREFIX: str = "visualizations"

    PANEL_BASE_URL: str = "http://localhost:3000"
    PANEL_DEFAULT_TTL_SECONDS: int = 7 * 24 * 60 * 60
    PANEL_MAX_TTL_SECONDS: int = 30 * 24 * 60 * 60
    PANEL_ID_LENGTH: int = 16

    CONTROL_DB_URL: Optional[str] = None
    CONTROL_DB_HOST: str = "localhost"
    CONTROL_DB_PORT: int = 5432
    CONTROL_DB_NAME: str = "sqlpanel_control"
    CONTROL_DB_USER: str = "postgres"
    CONTROL_DB_PASSWORD: str = "control_password"

    @model_validator(mode="after")
    def build_derived_urls(self) -> "Settings":
        """Fill URLs that can be derived from the individual fields."""
        if not self.CONTROL_DB_URL:
            self.CONTROL_DB_URL = (
                f"postgresql://{self.CONTROL_DB_USER}:{self.CONTROL_DB_PASSWORD}"
                f"@{self.CONTROL_DB_HOST}:{self.CONTROL_DB_PORT}/{self.CONTROL_DB_NAME}"
            )
        if not self.MINIO_PUBLIC_BASE_URL:
            scheme = "https" if self.MINIO_SECURE else "http"
            self.MINIO_PUBLIC_BASE_URL = f"{scheme}://{self.MINIO_ENDPOINT}"
        self.MINIO_PUBLIC_BASE_URL = self.MINIO_PUBLIC_BASE_URL.rstrip("/")
        self.PANEL_BASE_URL = self.PANEL_BASE_URL.rstrip("/")
        if self.PANEL_DEFAULT_TTL_SECONDS > self.PANEL_MAX_TTL_SECONDS:
            raise ValueError("PANEL_DEFAULT_TTL_SECONDS cannot exceed PANEL_MAX_TTL_SECONDS")
        return self

    class Config:
        """Pydantic config."""

        case_sensitive = True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, read once from the environment."""
    return Settings()
