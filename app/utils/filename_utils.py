"""
Filename utility functions for download filenames.

This module provides utilities for:
- Sanitizing titles into short, lower-case, dash-separated slugs
- Creating unique download filenames with a millisecond timestamp suffix
- Encoding filenames for Content-Disposition headers
"""

import re
import time
import unicodedata
from typing import Optional
from urllib.parse import quote


MAX_TITLE_LENGTH = 50


def sanitize_title(title: str, max_length: int = MAX_TITLE_LENGTH) -> str:
    """
    Turn a title into a filename slug.

    Every non-alphanumeric character becomes a dash, runs of dashes collapse
    into one, the result is lower-cased and truncated to max_length.
    Leading/trailing dashes are dropped so the timestamp joins with a single dash.

    Example:
        >>> sanitize_title("My Video! #1 (HD)")
        'my-video-1-hd'
    """
    slug = re.sub(r'[^a-z0-9]', '-', title or '', flags=re.IGNORECASE)
    slug = re.sub(r'-+', '-', slug)
    slug = slug.lower()[:max_length]
    return slug.strip('-')


def create_download_filename(
    title: Optional[str],
    extension: str,
    fallback: str = 'media',
    timestamp_ms: Optional[int] = None,
) -> str:
    """
    Create filename: {sanitized-title-or-fallback}-{timestamp}.{ext}
    Example: "my-video-1-hd-1760780000000.mp4"
    """
    slug = sanitize_title(title) or sanitize_title(fallback) or 'media'
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    extension = extension.lstrip('.')
    return f"{slug}-{timestamp_ms}.{extension}"


def encode_content_disposition_filename(filename: str) -> str:
    """Encode filename for Content-Disposition header following RFC 5987."""
    # For ASCII filenames, use simple format
    try:
        filename.encode('ascii')
        safe_filename = filename.replace('"', '\\"')
        return f'attachment; filename="{safe_filename}"'
    except UnicodeEncodeError:
        encoded_filename = quote(filename, safe='')
        ascii_filename = unicodedata.normalize('NFD', filename)
        ascii_filename = ascii_filename.encode('ascii', 'ignore').decode('ascii')
        ascii_filename = ascii_filename.replace('"', '\\"') or 'media'
        return f'attachment; filename="{ascii_filename}"; filename*=UTF-8\'\'{encoded_filename}'
