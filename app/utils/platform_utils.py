"""
Platform utility functions for classifying and parsing media URLs.

This module provides utilities for:
- Detecting platform and sub-kind (video, reel, post, profile) from a URL
- Extracting YouTube video IDs
- Parsing Instagram usernames from profile URLs
- Mapping the proxy `type` parameter to a platform kind
"""

import re
from typing import Optional

from app.exceptions import InvalidVideoId, UnsupportedPlatform
from app.models.media import PlatformKind


YOUTUBE_ID_PATTERN = re.compile(
    r'^.*((youtu.be/)|(v/)|(/u/\w/)|(embed/)|(watch\?))\??v?=?([^#&?]*).*'
)
YOUTUBE_ID_LENGTH = 11


def is_youtube_url(url: str) -> bool:
    """Check if URL is a YouTube URL."""
    url_lower = url.lower()
    return 'youtube.com' in url_lower or 'youtu.be' in url_lower


def is_instagram_url(url: str) -> bool:
    """Check if URL is an Instagram URL."""
    return 'instagram.com' in url.lower()


def is_facebook_url(url: str) -> bool:
    """Check if URL is a Facebook URL."""
    url_lower = url.lower()
    return 'facebook.com' in url_lower or 'fb.com' in url_lower


def extract_youtube_video_id(url: str) -> Optional[str]:
    """
    Extract the 11-character video ID from a YouTube URL.

    Handles youtu.be/<id>, /v/<id>, /u/<c>/<id>, /embed/<id> and watch?v=<id>.
    Returns None when no ID is found or it is not exactly 11 characters.

    Example:
        >>> extract_youtube_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ")
        'dQw4w9WgXcQ'
    """
    match = YOUTUBE_ID_PATTERN.match(url)
    if match and len(match.group(7)) == YOUTUBE_ID_LENGTH:
        return match.group(7)
    return None


def parse_instagram_username(url: str) -> str:
    """Return the path segment after instagram.com/, or "user" if there is none."""
    parts = url.split('instagram.com/', 1)
    if len(parts) < 2:
        return 'user'
    username = parts[1].split('/')[0].split('?')[0]
    return username or 'user'


def classify_url(url: str) -> PlatformKind:
    """
    Classify a URL into a platform kind.

    Raises:
        UnsupportedPlatform: URL is not YouTube, Instagram or Facebook
        InvalidVideoId: YouTube URL without a valid 11-character video ID
    """
    if is_youtube_url(url):
        if extract_youtube_video_id(url) is None:
            raise InvalidVideoId()
        return PlatformKind.YOUTUBE
    elif is_instagram_url(url):
        if '/reel/' in url:
            return PlatformKind.INSTAGRAM_REEL
        elif '/p/' in url:
            return PlatformKind.INSTAGRAM_POST
        return PlatformKind.INSTAGRAM_PROFILE
    elif is_facebook_url(url):
        return PlatformKind.FACEBOOK
    else:
        raise UnsupportedPlatform()


def kind_from_type(type_param: str) -> PlatformKind:
    """Map the proxy `type` query parameter to a platform kind."""
    try:
        return PlatformKind(type_param)
    except ValueError:
        raise UnsupportedPlatform("Unsupported content type")
