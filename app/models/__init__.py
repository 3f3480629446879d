"""
Models package for domain types and API request/response validation.

This package contains the Pydantic models used throughout the application:
domain models for the resolution pipeline and API-facing schemas.
"""

from .media import (
    PlatformKind,
    DeliveryMode,
    MediaRequest,
    ResolvedMedia,
    CacheEntry,
)
from .schemas import (
    DownloadRequest,
    DownloadResponse,
    CacheFileInfo,
    CacheListResponse,
)

__all__ = [
    "PlatformKind",
    "DeliveryMode",
    "MediaRequest",
    "ResolvedMedia",
    "CacheEntry",
    "DownloadRequest",
    "DownloadResponse",
    "CacheFileInfo",
    "CacheListResponse",
]
