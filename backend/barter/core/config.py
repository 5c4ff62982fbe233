from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    project_name: str = Field(default="Barter Exchange API")
    version: str = Field(default="0.1.0")
    environment: str = Field(default="development")
    commit_sha: str = Field(default="local-dev")

    database_url: str = Field(default="sqlite:///./barter.db")
    allowed_origins: str = Field(default="*")
    require_verified_users: bool = Field(default=True)

    log_level: str = Field(default="INFO")
    log_format: str = Field(
        default="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def get_allowed_origins(self) -> List[str]:
        """Parse CORS origins from a comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""
    return Settings()


settings = get_settings()
