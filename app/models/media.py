"""
Domain models for the media resolution pipeline.

MediaRequest flows into a resolver, ResolvedMedia flows out of it and into
the delivery pipeline. CacheEntry describes a persisted media file.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.config import ALLOWED_CONTENT_TYPES


class PlatformKind(str, Enum):
    """Platform and sub-kind of a URL; values double as the proxy `type` parameter."""
    YOUTUBE = "youtube"
    INSTAGRAM_REEL = "reel"
    INSTAGRAM_POST = "post"
    INSTAGRAM_PROFILE = "profile"
    FACEBOOK = "facebook"

    @property
    def platform(self) -> str:
        if self in (PlatformKind.INSTAGRAM_REEL, PlatformKind.INSTAGRAM_POST, PlatformKind.INSTAGRAM_PROFILE):
            return "instagram"
        return self.value

    @property
    def cache_prefix(self) -> str:
        """File name prefix for cached media, e.g. "instagram-post"."""
        if self.platform == "instagram":
            return f"instagram-{self.value}"
        return self.value


class DeliveryMode(str, Enum):
    STREAM = "stream"
    REDIRECT = "redirect"
    CACHED_FILE = "cached_file"


class MediaRequest(BaseModel):
    """One incoming download request."""
    model_config = ConfigDict(frozen=True)

    raw_url: str
    requested_quality: Optional[str] = None
    explicit_media_url: Optional[str] = None


def is_absolute_http_url(url: str) -> bool:
    parsed = urlparse(url or "")
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class ResolvedMedia(BaseModel):
    """A directly fetchable media locator produced by a resolver."""
    model_config = ConfigDict(frozen=True)

    source_url: str
    content_type: str
    suggested_filename: str
    title: Optional[str] = None
    thumbnail_url: Optional[str] = None
    delivery_mode: DeliveryMode = DeliveryMode.STREAM
    request_headers: Dict[str, str] = Field(default_factory=dict)

    @field_validator("source_url")
    @classmethod
    def _check_source_url(cls, value: str) -> str:
        if not is_absolute_http_url(value):
            raise ValueError(f"source_url must be an absolute http(s) URL: {value!r}")
        return value

    @field_validator("content_type")
    @classmethod
    def _check_content_type(cls, value: str) -> str:
        if value not in ALLOWED_CONTENT_TYPES:
            raise ValueError(f"content_type must be one of {ALLOWED_CONTENT_TYPES}: {value!r}")
        return value

    @property
    def extension(self) -> str:
        return "jpg" if self.content_type == "image/jpeg" else "mp4"


class CacheEntry(BaseModel):
    """A complete media file in the on-disk cache."""
    url_hash: str
    file_path: str
    created_at: datetime
    size_bytes: int
