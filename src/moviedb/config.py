"""Settings for the catalog API, paging, throttling and the page cache."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Loaded from MOVIEDB_* environment variables or a .env file."""

    model_config = SettingsConfigDict(env_prefix="MOVIEDB_", env_file=".env", extra="ignore")

    api_base_url: str = Field(default="https://api.themoviedb.org/3/", description="Movie catalog API base URL")
    api_key: str = Field(default="", description="Catalog API key, sent as the api_key query item")
    image_base_url: str = Field(default="https://image.tmdb.org/t/p/w500", description="Base URL for poster paths")
    language: str = Field(default="en-US", description="Preferred response language")
    page_size: int = Field(default=20, ge=1, description="Movies per catalog page")
    throttle_ms: int = Field(default=1500, ge=0, description="Trailing-edge throttle window for refresh/next-page")
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis URL for the page cache")
    cache_ttl: int = Field(default=300, description="Page cache TTL in seconds")

    @property
    def throttle_interval(self) -> float:
        """Throttle window in seconds."""
        return self.throttle_ms / 1000.0


settings = Settings()
