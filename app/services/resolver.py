"""
Resolver interface shared by the platform resolvers.

A resolver turns a classified MediaRequest into a ResolvedMedia, or raises
one of the errors in app.exceptions.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from app.config import DELIVERY_MODE
from app.models.media import DeliveryMode, MediaRequest, PlatformKind, ResolvedMedia
from app.utils.logging_utils import get_request_logger


KIND_TITLES = {
    PlatformKind.YOUTUBE: "YouTube Video",
    PlatformKind.INSTAGRAM_REEL: "Instagram Reel",
    PlatformKind.INSTAGRAM_POST: "Instagram Post",
    PlatformKind.INSTAGRAM_PROFILE: "Instagram Profile Photo",
    PlatformKind.FACEBOOK: "Facebook Video",
}


def proxied_delivery_mode(mode: str = DELIVERY_MODE) -> DeliveryMode:
    """Delivery mode for media that passes through this server ('stream' or 'cache')."""
    return DeliveryMode.CACHED_FILE if mode == "cache" else DeliveryMode.STREAM


def looks_like_video(url: str) -> bool:
    """Infer video vs image from a resolved media URL."""
    return ".mp4" in url or "/video/" in url


def content_type_for_url(url: str) -> Tuple[str, str]:
    """Return (content_type, extension) inferred from a media URL."""
    if looks_like_video(url):
        return "video/mp4", "mp4"
    return "image/jpeg", "jpg"


class Resolver(ABC):
    """Platform-specific strategy that produces a directly fetchable media locator."""

    #: Kinds this resolver accepts
    kinds: Tuple[PlatformKind, ...] = ()

    def __init__(self, delivery_mode: Optional[DeliveryMode] = None):
        self.delivery_mode = delivery_mode or proxied_delivery_mode()

    def supports(self, kind: PlatformKind) -> bool:
        return kind in self.kinds

    @abstractmethod
    def resolve(
        self,
        request: MediaRequest,
        kind: PlatformKind,
        logger: Optional[logging.LoggerAdapter] = None,
    ) -> ResolvedMedia:
        """Resolve the request or raise a MediaDownloadError."""

    @staticmethod
    def _logger(logger: Optional[logging.LoggerAdapter]) -> logging.LoggerAdapter:
        return logger if logger is not None else get_request_logger("-")
