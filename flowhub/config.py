"""Configuration management for the flowhub service."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FLOWHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Server settings
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    # Template store
    database_url: str = "sqlite+aiosqlite:///./flowhub.db"

    # Public site (sitemap, canonical URLs)
    site_url: str = "https://n8njson.io"
    site_name: str = "n8n json"

    # Listing windows
    default_page_size: int = 50
    category_page_size: int = 12

    # Newsletter provider (Beehiiv)
    beehiiv_api_url: str = "https://api.beehiiv.com/v2"
    beehiiv_api_key: str = ""
    beehiiv_publication_id: str = ""
    newsletter_timeout: float = 10.0
    newsletter_duplicate_after_seconds: int = 60
    newsletter_utm_source: str = "n8n-json"

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
