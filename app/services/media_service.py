"""
Media service module.

Entry point of the resolution pipeline used by the routers:
- Selects the resolver for a platform kind
- Handles the explicit media_url bypass (no HTML extraction)
- Builds the JSON envelopes for prepared and resolved downloads
"""

import logging
from typing import Dict, Optional, Tuple
from urllib.parse import urlencode

from app.exceptions import InvalidUrl, InvalidVideoId
from app.models.media import MediaRequest, PlatformKind, ResolvedMedia, is_absolute_http_url
from app.models.schemas import DownloadResponse
from app.services.facebook_resolver import FacebookResolver
from app.services.instagram_resolver import InstagramResolver
from app.services.resolver import KIND_TITLES, Resolver, content_type_for_url, proxied_delivery_mode
from app.services.youtube_resolver import YouTubeResolver
from app.utils.filename_utils import create_download_filename
from app.utils.logging_utils import get_request_logger
from app.utils.platform_utils import classify_url, extract_youtube_video_id, parse_instagram_username


PROXY_PATH = "/api/proxy"
PLACEHOLDER_THUMBNAIL = "/placeholder.svg?height=300&width=500"

_instagram = InstagramResolver()
RESOLVERS: Dict[PlatformKind, Resolver] = {
    PlatformKind.YOUTUBE: YouTubeResolver(),
    PlatformKind.INSTAGRAM_REEL: _instagram,
    PlatformKind.INSTAGRAM_POST: _instagram,
    PlatformKind.INSTAGRAM_PROFILE: _instagram,
    PlatformKind.FACEBOOK: FacebookResolver(),
}


def get_resolver(kind: PlatformKind) -> Resolver:
    return RESOLVERS[kind]


def resolve_explicit_media(request: MediaRequest, kind: PlatformKind) -> ResolvedMedia:
    """Wrap a caller-supplied direct media URL without touching the platform page."""
    media_url = request.explicit_media_url
    if not is_absolute_http_url(media_url):
        raise InvalidUrl("Invalid media URL")

    if kind == PlatformKind.INSTAGRAM_PROFILE:
        content_type, extension = "image/jpeg", "jpg"
    else:
        content_type, extension = content_type_for_url(media_url)

    title = KIND_TITLES[kind]
    return ResolvedMedia(
        source_url=media_url,
        content_type=content_type,
        suggested_filename=create_download_filename(title, extension, fallback=kind.value),
        title=title,
        delivery_mode=proxied_delivery_mode(),
    )


def resolve_media(
    request: MediaRequest,
    kind: Optional[PlatformKind] = None,
    logger: Optional[logging.LoggerAdapter] = None,
) -> Tuple[PlatformKind, ResolvedMedia]:
    """
    Classify (unless kind is given) and resolve a request.

    Blocking (network + yt-dlp); call from a threadpool.

    Returns:
        (kind, resolved media)

    Raises:
        MediaDownloadError subclasses from classification or resolution
    """
    if logger is None:
        logger = get_request_logger("-")

    if kind is None:
        kind = classify_url(request.raw_url)
    elif kind == PlatformKind.YOUTUBE and extract_youtube_video_id(request.raw_url) is None:
        raise InvalidVideoId()

    if request.explicit_media_url:
        logger.info(f"Using supplied media URL for {kind.value}, skipping extraction")
        return kind, resolve_explicit_media(request, kind)

    logger.info(f"Resolving {kind.value} URL: {request.raw_url}")
    media = get_resolver(kind).resolve(request, kind, logger)
    logger.info(f"Resolved {kind.value} -> {media.content_type} ({media.delivery_mode.value})")
    return kind, media


def proxy_download_url(url: str, kind: PlatformKind, api_key: Optional[str] = None) -> str:
    params = {'url': url, 'type': kind.value}
    if api_key:
        params['api_key'] = api_key
    return f"{PROXY_PATH}?{urlencode(params)}"


def build_prepared_envelope(url: str, kind: PlatformKind, api_key: Optional[str] = None) -> DownloadResponse:
    """
    Envelope pointing the client at the proxy endpoint, built from the URL alone.

    api_key, when given, is embedded in the link for clients that cannot send headers.

    Raises:
        InvalidVideoId: YouTube URL without a valid video ID
    """
    download_url = proxy_download_url(url, kind, api_key)

    if kind == PlatformKind.YOUTUBE:
        video_id = extract_youtube_video_id(url)
        if video_id is None:
            raise InvalidVideoId()
        return DownloadResponse(
            success=True,
            message="YouTube video processed successfully",
            download_url=download_url,
            type="Video",
            title=f"YouTube Video (ID: {video_id})",
            thumbnail=f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg",
            is_external=False,
        )

    if kind == PlatformKind.INSTAGRAM_REEL:
        message, type_label, title = "Instagram reel processed successfully", "Reel", "Instagram Reel"
    elif kind == PlatformKind.INSTAGRAM_POST:
        message, type_label, title = "Instagram post processed successfully", "Post", "Instagram Post"
    elif kind == PlatformKind.INSTAGRAM_PROFILE:
        message, type_label = "Instagram profile photo processed successfully", "Profile Photo"
        title = f"Profile Photo: @{parse_instagram_username(url)}"
    else:
        message, type_label, title = "Facebook video processed successfully", "Video", "Facebook Video"

    return DownloadResponse(
        success=True,
        message=message,
        download_url=download_url,
        type=type_label,
        title=title,
        thumbnail=PLACEHOLDER_THUMBNAIL,
        is_external=False,
    )


def build_resolved_envelope(kind: PlatformKind, media: ResolvedMedia) -> DownloadResponse:
    """Envelope exposing the upstream media URL directly."""
    return DownloadResponse(
        success=True,
        message=f"{KIND_TITLES[kind]} resolved successfully",
        download_url=media.source_url,
        file_name=media.suggested_filename,
        content_type=media.content_type,
        title=media.title,
        thumbnail=media.thumbnail_url,
        type=kind.value,
        is_external=True,
    )
