"""
Configuration module for the social media download API.

This module centralizes all environment variables, constants, and runtime configuration
using pydantic-settings for type-safe configuration management.
"""

import os
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # CORS Configuration
    allowed_origin: str = Field(
        default="*",
        validation_alias="ALLOWED_ORIGIN",
        description="Allowed CORS origin for API requests"
    )

    # API Authentication
    api_key: str = Field(
        default="",
        validation_alias="API_KEY",
        description="API key for endpoint authentication (empty disables authentication)"
    )

    # Cache Configuration
    cache_dir: str = Field(
        default="./cache",
        validation_alias="CACHE_DIR",
        description="Directory for content-addressed media cache"
    )

    cache_ttl_hours: int = Field(
        default=24,
        validation_alias="CACHE_TTL_HOURS",
        description="Age in hours after which /cache/cleanup removes a cached file"
    )

    # Delivery Configuration
    delivery_mode: str = Field(
        default="stream",
        validation_alias="DELIVERY_MODE",
        pattern="^(stream|cache)$",
        description="How proxied media is delivered: 'stream' (pass-through) or 'cache' (persist then serve)"
    )

    facebook_delivery_mode: str = Field(
        default="stream",
        validation_alias="FACEBOOK_DELIVERY_MODE",
        pattern="^(stream|redirect)$",
        description="Facebook delivery: 'stream' through the API or 'redirect' the client to the CDN URL"
    )

    # Upstream HTTP Configuration
    request_timeout: float = Field(
        default=30.0,
        validation_alias="REQUEST_TIMEOUT",
        description="Timeout in seconds for every upstream request"
    )

    stream_chunk_size: int = Field(
        default=64 * 1024,
        validation_alias="STREAM_CHUNK_SIZE",
        description="Chunk size in bytes for streamed and cached media"
    )

    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        validation_alias="USER_AGENT",
        description="Browser User-Agent sent to upstream platforms"
    )

    # yt-dlp Configuration
    ytdlp_cookies_file: Optional[str] = Field(
        default=None,
        validation_alias="YTDLP_COOKIES_FILE",
        description="Path to cookies.txt for authenticated YouTube metadata requests"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level for the request logger"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


# Initialize settings
settings = get_settings()

ALLOWED_ORIGIN = settings.allowed_origin
CACHE_DIR = settings.cache_dir
CACHE_TTL_HOURS = settings.cache_ttl_hours

# Cached media lives in its own subdirectory so listing/cleanup never touches anything else
MEDIA_CACHE_DIR = os.path.join(CACHE_DIR, "media")
os.makedirs(MEDIA_CACHE_DIR, exist_ok=True)

DELIVERY_MODE = settings.delivery_mode
FACEBOOK_DELIVERY_MODE = settings.facebook_delivery_mode

REQUEST_TIMEOUT = settings.request_timeout
STREAM_CHUNK_SIZE = settings.stream_chunk_size
USER_AGENT = settings.user_agent

YTDLP_COOKIES_FILE = settings.ytdlp_cookies_file

LOG_LEVEL = settings.log_level

# Only these media types are ever served
ALLOWED_CONTENT_TYPES = ("video/mp4", "image/jpeg")

print(f"INFO: Media delivery mode: {DELIVERY_MODE} (facebook: {FACEBOOK_DELIVERY_MODE})")
print(f"INFO: Media cache directory: {MEDIA_CACHE_DIR}")

if YTDLP_COOKIES_FILE and not os.path.exists(YTDLP_COOKIES_FILE):
    print(f"WARNING: Cookies file not found: {YTDLP_COOKIES_FILE}")

if not settings.api_key:
    print("INFO: API_KEY not set - endpoints are open")
