"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file and override existing env vars
load_dotenv(override=True)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Simulated deployments
    deployed_domain: str = "deployhub.app"
    simulated_delay_scale: float = Field(default=1.0, ge=0)

    # Vercel Deployment
    vercel_token: str = Field(default="")
    vercel_team_id: str | None = None
    vercel_api_url: str = "https://api.vercel.com"
    vercel_deploy_real: bool = False  # Set to True to deploy through the Vercel API
    provider_poll_interval: float = Field(default=3.0, ge=0)
    provider_poll_max_attempts: int = Field(default=60, ge=1)

    # GitHub
    github_token: str = Field(default="")
    github_api_url: str = "https://api.github.com"

    # Outbound HTTP
    http_timeout: float = 30.0

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["console", "json"] = "console"
    log_directory: str = "logs"
    log_file_name: str = "deployhub.log"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
