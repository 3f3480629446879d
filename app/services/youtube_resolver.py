"""
YouTube resolver.

Uses the yt-dlp Python API to validate the URL with yt-dlp's own YouTube
extractor, fetch video metadata (single attempt, no download) and pick the
best matching variant:

1. An exact format_id match for the requested quality wins
2. Otherwise directly fetchable (http/https) video variants are sorted by
   resolution (desc), then audio presence, then explicit container
"""

import os
import re
import logging
import mimetypes
from typing import Any, Dict, List, Optional

import yt_dlp
from yt_dlp.extractor import get_info_extractor

from app.config import ALLOWED_CONTENT_TYPES, YTDLP_COOKIES_FILE
from app.exceptions import InvalidUrl, MetadataUnavailable, NoFormatAvailable
from app.models.media import MediaRequest, PlatformKind, ResolvedMedia
from app.services.resolver import KIND_TITLES, Resolver
from app.utils.filename_utils import create_download_filename


DEFAULT_CONTENT_TYPE = "video/mp4"
DIRECT_PROTOCOLS = (None, "http", "https")


def is_valid_youtube_url(url: str) -> bool:
    """Authoritative check: would yt-dlp's YouTube extractor accept this URL?"""
    return get_info_extractor("Youtube").suitable(url)


def fetch_video_info(url: str, cookies_file: Optional[str] = YTDLP_COOKIES_FILE) -> Dict[str, Any]:
    """
    Fetch video metadata with yt-dlp (no download).

    Raises:
        MetadataUnavailable: yt-dlp failed to extract info
    """
    meta_opts = {
        'quiet': True,
        'no_warnings': True,
        'skip_download': True,
        'noplaylist': True,
    }
    if cookies_file and os.path.exists(cookies_file):
        meta_opts['cookiefile'] = cookies_file

    try:
        with yt_dlp.YoutubeDL(meta_opts) as ydl:
            info = ydl.extract_info(url, download=False)
    except Exception as e:
        raise MetadataUnavailable(f"Could not get video information: {str(e)}")

    if not info:
        raise MetadataUnavailable()
    return info


def _resolution(fmt: Dict[str, Any]) -> int:
    """Height if present, else digits from the quality label, else from the quality string, else 0."""
    height = fmt.get('height')
    if isinstance(height, (int, float)) and height > 0:
        return int(height)
    for field in ('format_note', 'quality'):
        value = fmt.get(field)
        if value is None:
            continue
        match = re.search(r'\d+', str(value))
        if match:
            return int(match.group())
    return 0


def _has_video(fmt: Dict[str, Any]) -> bool:
    return fmt.get('vcodec') != 'none'


def _has_audio(fmt: Dict[str, Any]) -> bool:
    return fmt.get('acodec') not in (None, 'none')


def _has_container(fmt: Dict[str, Any]) -> bool:
    return bool(fmt.get('container') or fmt.get('ext'))


def _is_direct(fmt: Dict[str, Any]) -> bool:
    # HLS/DASH formats point at a manifest, not at the media bytes
    return fmt.get('protocol') in DIRECT_PROTOCOLS


def select_variant(formats: List[Dict[str, Any]], quality: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Pick the variant to deliver.

    Args:
        formats: yt-dlp `formats` list
        quality: Optional format_id (itag) requested by the caller

    Returns:
        The chosen format dict, or None when no directly fetchable video
        variant has a URL
    """
    candidates = [f for f in formats or [] if f.get('url') and _has_video(f) and _is_direct(f)]

    if quality:
        for fmt in candidates:
            if str(fmt.get('format_id')) == str(quality):
                return fmt

    if not candidates:
        return None

    # sorted() is stable, so upstream order breaks any remaining ties
    ranked = sorted(
        candidates,
        key=lambda f: (_resolution(f), _has_audio(f), _has_container(f)),
        reverse=True,
    )
    return ranked[0]


def content_type_for_variant(fmt: Dict[str, Any]) -> str:
    ext = fmt.get('ext')
    if ext:
        guessed, _ = mimetypes.guess_type(f"media.{ext}")
        if guessed in ALLOWED_CONTENT_TYPES:
            return guessed
    return DEFAULT_CONTENT_TYPE


class YouTubeResolver(Resolver):
    kinds = (PlatformKind.YOUTUBE,)

    def resolve(
        self,
        request: MediaRequest,
        kind: PlatformKind = PlatformKind.YOUTUBE,
        logger: Optional[logging.LoggerAdapter] = None,
    ) -> ResolvedMedia:
        logger = self._logger(logger)
        url = request.raw_url

        if not is_valid_youtube_url(url):
            raise InvalidUrl("Invalid YouTube URL")

        logger.info("Getting video info...")
        info = fetch_video_info(url)
        title = info.get('title') or KIND_TITLES[PlatformKind.YOUTUBE]
        formats = info.get('formats') or []
        logger.info(f"Video info retrieved: '{title}' ({len(formats)} formats)")

        variant = select_variant(formats, request.requested_quality)
        if variant is None:
            raise NoFormatAvailable()

        if request.requested_quality and str(variant.get('format_id')) != str(request.requested_quality):
            logger.info(f"Requested quality {request.requested_quality} not available, using best format")
        logger.info(
            f"Selected format {variant.get('format_id')} "
            f"({_resolution(variant)}p, audio={_has_audio(variant)})"
        )

        return ResolvedMedia(
            source_url=variant['url'],
            content_type=content_type_for_variant(variant),
            suggested_filename=create_download_filename(title, "mp4", fallback="youtube"),
            title=title,
            thumbnail_url=info.get('thumbnail'),
            delivery_mode=self.delivery_mode,
            request_headers={k: str(v) for k, v in (variant.get('http_headers') or {}).items()},
        )
