"""
Configuration for the MixWheel backend
"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=False)

    # Spotify app credentials
    spotify_client_id: str = ""
    spotify_client_secret: str = ""

    # Used when the request host is neither local nor a known public host
    spotify_redirect_uri: str = "http://localhost:8000/api/auth/callback"

    # Comma-separated host suffixes served over https
    public_hosts: str = "vercel.app"

    frontend_path: str = "/static/"

    spotify_api_base: str = "https://api.spotify.com/v1"
    spotify_accounts_base: str = "https://accounts.spotify.com"

    # HTTP
    http_timeout: float = 30.0
    http_max_retries: int = Field(default=3, ge=0, le=10)
    add_tracks_batch_size: int = Field(default=100, ge=1, le=100)

    log_level: str = "INFO"

    @property
    def public_host_list(self) -> List[str]:
        return [h.strip().lower() for h in self.public_hosts.split(",") if h.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
