"""
Instagram resolver.

The page HTML is fetched once with browser-like headers and run through a
fallback chain:

1. shared_data - legacy `window._sharedData` JSON payload
2. json_ld     - `application/ld+json` script blocks
3. meta_tags   - og:image (post/profile) or og:video (reel)

Every strategy fails softly; only exhaustion raises MediaNotFound.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from app.exceptions import MediaNotFound, UpstreamFetchFailed
from app.models.media import MediaRequest, PlatformKind, ResolvedMedia, is_absolute_http_url
from app.services.fallback import FallbackChain, Outcome
from app.services.http_service import fetch_html
from app.services.resolver import KIND_TITLES, Resolver, content_type_for_url
from app.utils.filename_utils import create_download_filename
from app.utils.platform_utils import parse_instagram_username


SHARED_DATA_MARKER = "window._sharedData"


def _load_shared_data(soup: BeautifulSoup) -> Optional[Dict[str, Any]]:
    for script in soup.find_all("script"):
        text = script.string or script.get_text()
        if not text or SHARED_DATA_MARKER not in text:
            continue
        payload = text[text.index("{"):text.rindex("}") + 1]
        return json.loads(payload)
    return None


def extract_from_shared_data(soup: BeautifulSoup, kind: PlatformKind) -> Outcome:
    """Navigate the legacy shared-data payload to the post or profile media URL."""
    data = _load_shared_data(soup)
    if data is None:
        return Outcome.not_found("no shared-data script")

    entry_data = data.get("entry_data") or {}

    if kind == PlatformKind.INSTAGRAM_PROFILE:
        pages = entry_data.get("ProfilePage") or []
        if not pages:
            return Outcome.not_found("no ProfilePage entry")
        user = pages[0]["graphql"]["user"]
        url = user.get("profile_pic_url_hd") or user.get("profile_pic_url")
    else:
        pages = entry_data.get("PostPage") or []
        if not pages:
            return Outcome.not_found("no PostPage entry")
        media = pages[0]["graphql"]["shortcode_media"]
        if kind == PlatformKind.INSTAGRAM_REEL:
            url = media.get("video_url")
        elif media.get("is_video"):
            url = media.get("video_url")
        else:
            url = media.get("display_url")

    return Outcome.found(url) if url else Outcome.not_found("media URL missing from shared data")


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _image_url(image: Any) -> Optional[str]:
    if isinstance(image, str):
        return image
    if isinstance(image, dict):
        return image.get("url") or image.get("contentUrl")
    return None


def _load_json_ld(soup: BeautifulSoup) -> Tuple[List[Dict[str, Any]], int]:
    """Parse every JSON-LD block on its own; returns (items, number of malformed blocks)."""
    items: List[Dict[str, Any]] = []
    malformed = 0
    for script in soup.find_all("script", type="application/ld+json"):
        try:
            data = json.loads(script.string or script.get_text() or "null")
        except json.JSONDecodeError:
            malformed += 1
            continue
        items.extend(item for item in _as_list(data) if isinstance(item, dict))
    return items, malformed


def extract_from_json_ld(soup: BeautifulSoup, kind: PlatformKind) -> Outcome:
    """Return video.contentUrl if any JSON-LD block has one, else the first image URL."""
    items, malformed = _load_json_ld(soup)
    if not items:
        if malformed:
            return Outcome.parse_error(f"{malformed} malformed JSON-LD blocks")
        return Outcome.not_found("no JSON-LD blocks")

    for item in items:
        for video in _as_list(item.get("video")):
            if isinstance(video, dict) and is_absolute_http_url(video.get("contentUrl")):
                return Outcome.found(video["contentUrl"])

    for item in items:
        for image in _as_list(item.get("image")):
            url = _image_url(image)
            if is_absolute_http_url(url):
                return Outcome.found(url)

    return Outcome.not_found("JSON-LD has no video or image")


def extract_from_meta_tags(soup: BeautifulSoup, kind: PlatformKind) -> Outcome:
    prop = "og:video" if kind == PlatformKind.INSTAGRAM_REEL else "og:image"
    tag = soup.find("meta", attrs={"property": prop})
    if tag and tag.get("content"):
        return Outcome.found(tag["content"])
    return Outcome.not_found(f"no {prop} meta tag")


INSTAGRAM_CHAIN = FallbackChain("instagram", [
    ("shared_data", extract_from_shared_data),
    ("json_ld", extract_from_json_ld),
    ("meta_tags", extract_from_meta_tags),
])


class InstagramResolver(Resolver):
    kinds = (PlatformKind.INSTAGRAM_REEL, PlatformKind.INSTAGRAM_POST, PlatformKind.INSTAGRAM_PROFILE)

    def __init__(self, delivery_mode=None, chain: FallbackChain = INSTAGRAM_CHAIN):
        super().__init__(delivery_mode)
        self.chain = chain

    def resolve(
        self,
        request: MediaRequest,
        kind: PlatformKind,
        logger: Optional[logging.LoggerAdapter] = None,
    ) -> ResolvedMedia:
        logger = self._logger(logger)
        label = kind.value

        try:
            html = fetch_html(request.raw_url)
        except UpstreamFetchFailed as e:
            logger.error(f"Error loading Instagram {label} page: {e.message}")
            raise MediaNotFound(f"Could not extract Instagram {label} URL")

        soup = BeautifulSoup(html, "html.parser")
        result = self.chain.run(soup, kind, logger=logger)
        if not result.succeeded:
            raise MediaNotFound(f"Could not extract Instagram {label} URL")

        if kind == PlatformKind.INSTAGRAM_REEL:
            content_type, extension = "video/mp4", "mp4"
        elif kind == PlatformKind.INSTAGRAM_PROFILE:
            content_type, extension = "image/jpeg", "jpg"
        else:
            content_type, extension = content_type_for_url(result.url)

        if kind == PlatformKind.INSTAGRAM_PROFILE:
            title = f"Profile Photo: @{parse_instagram_username(request.raw_url)}"
        else:
            title = KIND_TITLES[kind]

        return ResolvedMedia(
            source_url=result.url,
            content_type=content_type,
            suggested_filename=create_download_filename(title, extension, fallback=f"instagram-{label}"),
            title=title,
            thumbnail_url=result.url if content_type == "image/jpeg" else None,
            delivery_mode=self.delivery_mode,
        )
