"""Configuration settings for the yt-relay service."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """yt-relay configuration loaded from ``YT_RELAY_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="YT_RELAY_",
        case_sensitive=False,
    )

    # Service settings
    host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "INFO"
    api_prefix: str = "/api/youtube"
    public_base_url: str | None = None  # used for streamUrl/downloadUrl links

    # yt-dlp session
    session_failure_threshold: int = 3
    cookie_file: str | None = None

    # Search
    search_limit_max: int = 50

    # Upstream relay
    stream_chunk_size: int = 65536
    upstream_timeout: float = 30.0
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
