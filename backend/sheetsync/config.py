"""Application configuration management."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.debug and self.log_level.upper() != "TRACE":
            self.log_level = "DEBUG"

    # Database
    database_url: str

    # Security
    secret_key: str
    encryption_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Admin User
    admin_username: str = "admin"
    admin_password: str = "changeme"

    # Application
    debug: bool = False
    log_level: str = "INFO"
    api_v1_str: str = "/api/v1"

    # Scheduler
    scheduler_enabled: bool = True
    scheduler_interval_seconds: int = 60

    # Sync engine
    status_history_size: int = 10
    target_write_timeout_seconds: Optional[float] = None  # None = wait for the target indefinitely
    default_source_range: str = "A:Z"

    # Google Sheets
    google_sheets_api_url: str = "https://sheets.googleapis.com/v4"
    http_timeout_seconds: float = 30.0

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]


# Global settings instance
settings = Settings()
