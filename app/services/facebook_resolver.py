"""
Facebook resolver.

1. Prime session cookies from the home page (best-effort)
2. Normalize watch?v= / video.php?v= / videos/<id> links to the canonical video page
3. Fetch the page HTML with browser headers, cookies and referer
4. Run the ordered playable-URL pattern chain on the raw HTML
5. Re-scan inline scripts that mention playable_url with an escape-tolerant pattern

Unresolved pages raise VideoUnavailable before any media URL is fetched.
"""

import re
import json
import logging
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup

from app.config import FACEBOOK_DELIVERY_MODE
from app.exceptions import VideoUnavailable
from app.models.media import DeliveryMode, MediaRequest, PlatformKind, ResolvedMedia
from app.services.fallback import FallbackChain, Outcome, Strategy
from app.services.http_service import SessionContext, fetch_html, prime_session
from app.services.resolver import KIND_TITLES, Resolver, proxied_delivery_mode
from app.utils.filename_utils import create_download_filename


FACEBOOK_HOME_URL = "https://www.facebook.com/"
CANONICAL_VIDEO_URL = "https://www.facebook.com/video.php?v={video_id}"

VIDEO_ID_PATTERNS = [
    re.compile(r'watch/?\?v=([^&#/]+)'),
    re.compile(r'video\.php\?v=([^&#/]+)'),
    re.compile(r'/videos/(\d+)'),
]

# Ordered best to worst; first match wins
PLAYABLE_URL_PATTERNS: List[Tuple[str, str]] = [
    ("playable_url_quality_hd", r'"playable_url_quality_hd":"([^"]+)"'),
    ("playable_url", r'"playable_url":"([^"]+)"'),
    ("browser_native_hd_url", r'"browser_native_hd_url":"([^"]+)"'),
    ("browser_native_sd_url", r'"browser_native_sd_url":"([^"]+)"'),
    ("hd_src", r'"hd_src":"([^"]+)"'),
    ("sd_src", r'"sd_src":"([^"]+)"'),
    ("content_url", r'"contentUrl":"([^"]+)"'),
]

PLAYABLE_MARKER = "playable_url"

# Matches keys/values inside script JSON that is itself string-escaped (\"playable_url\":\"...\")
ESCAPED_PLAYABLE_PATTERN = re.compile(
    r'\\*"(?:playable_url_quality_hd|playable_url|browser_native_hd_url|browser_native_sd_url)\\*"'
    r'\s*:\s*\\*"(.+?)\\*"',
    re.IGNORECASE,
)

UNAVAILABLE_MESSAGE = (
    "Video URL not found. The video might be private, requires login, "
    "is age-restricted, has been deleted, or the link is malformed."
)


def extract_facebook_video_id(url: str) -> Optional[str]:
    for pattern in VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def normalize_facebook_url(url: str) -> str:
    """Rewrite links carrying a video ID to the canonical video page; leave others untouched."""
    video_id = extract_facebook_video_id(url)
    if video_id:
        return CANONICAL_VIDEO_URL.format(video_id=video_id)
    return url


def unescape_url(raw: str) -> str:
    """Decode JSON string escaping (possibly nested) and drop any remaining backslashes."""
    value = raw
    for _ in range(3):
        if '\\' not in value:
            break
        try:
            value = json.loads(f'"{value}"')
        except json.JSONDecodeError:
            break
    return value.replace('\\', '')


def _pattern_strategy(pattern: str) -> Strategy:
    compiled = re.compile(pattern, re.IGNORECASE)

    def strategy(html: str) -> Outcome:
        match = compiled.search(html)
        if match and match.group(1):
            return Outcome.found(unescape_url(match.group(1)))
        return Outcome.not_found()

    return strategy


def extract_from_inline_scripts(html: str) -> Outcome:
    """Secondary pass over inline scripts that mention playable_url."""
    soup = BeautifulSoup(html, "html.parser")
    scripts = [s.string or s.get_text() for s in soup.find_all("script")]
    candidates = [text for text in scripts if text and PLAYABLE_MARKER in text]
    if not candidates:
        return Outcome.not_found("no inline script mentions playable_url")

    for text in candidates:
        match = ESCAPED_PLAYABLE_PATTERN.search(text)
        if match:
            url = unescape_url(match.group(1))
            if url.startswith("http"):
                return Outcome.found(url)
    return Outcome.not_found(f"{len(candidates)} scripts scanned")


FACEBOOK_CHAIN = FallbackChain(
    "facebook",
    [(name, _pattern_strategy(pattern)) for name, pattern in PLAYABLE_URL_PATTERNS]
    + [("inline_scripts", extract_from_inline_scripts)],
)


def _meta_content(soup: BeautifulSoup, prop: str) -> Optional[str]:
    tag = soup.find("meta", attrs={"property": prop})
    return tag.get("content") if tag else None


def facebook_delivery_mode(mode: str = FACEBOOK_DELIVERY_MODE) -> DeliveryMode:
    """Deployment-wide delivery for Facebook: redirect to the CDN or proxy it like other media."""
    return DeliveryMode.REDIRECT if mode == "redirect" else proxied_delivery_mode()


class FacebookResolver(Resolver):
    kinds = (PlatformKind.FACEBOOK,)

    def __init__(self, delivery_mode: Optional[DeliveryMode] = None, chain: FallbackChain = FACEBOOK_CHAIN):
        super().__init__(delivery_mode or facebook_delivery_mode())
        self.chain = chain

    def resolve(
        self,
        request: MediaRequest,
        kind: PlatformKind = PlatformKind.FACEBOOK,
        logger: Optional[logging.LoggerAdapter] = None,
    ) -> ResolvedMedia:
        logger = self._logger(logger)

        session = prime_session(FACEBOOK_HOME_URL)
        if not session.is_primed:
            logger.info("No Facebook session cookies captured, continuing without them")
            session = SessionContext(referer=FACEBOOK_HOME_URL)

        page_url = normalize_facebook_url(request.raw_url)
        if page_url != request.raw_url:
            logger.info(f"Normalized Facebook URL to {page_url}")

        html = fetch_html(page_url, session=session)

        result = self.chain.run(html, logger=logger)
        if not result.succeeded:
            raise VideoUnavailable(UNAVAILABLE_MESSAGE)

        soup = BeautifulSoup(html, "html.parser")
        title = _meta_content(soup, "og:title") or KIND_TITLES[PlatformKind.FACEBOOK]

        return ResolvedMedia(
            source_url=result.url,
            content_type="video/mp4",
            suggested_filename=create_download_filename(title, "mp4", fallback="facebook"),
            title=title,
            thumbnail_url=_meta_content(soup, "og:image"),
            delivery_mode=self.delivery_mode,
        )
