"""Application settings using Pydantic Settings for configuration management."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from imapbridge import __version__

DEFAULT_CORS_ORIGINS = [
    "http://localhost:8080",
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:5174",
    "https://smtp-cascade-19.vercel.app",
    "https://eimqwhzgkfgggquixcgl.supabase.co",
    "https://eimqwhzgkfgggquixcgl.functions.supabase.co",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    app_name: str = "IMAP Bridge"
    app_version: str = __version__
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # API Server
    api_host: str = "0.0.0.0"
    port: int = 3001

    # CORS
    cors_origins: list[str] = Field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    cors_max_age: int = 86400

    # IMAP
    imap_mailbox: str = "INBOX"
    fetch_window_size: int = Field(default=50, ge=1)
    # Off for compatibility with self-signed cPanel hosts
    verify_certificates: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
