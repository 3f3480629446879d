"""
Pytest configuration and shared fixtures for test suite.

This module provides:
- Test environment variables (set before any app module is imported)
- Test client fixtures for FastAPI
- API key fixtures
- A fake upstream response for media fetches
- Sample platform URLs and HTML pages
"""

import os
import json
import tempfile

import pytest
import pytest_asyncio
import requests
from httpx import AsyncClient, ASGITransport


# app.config reads the environment once at import, so this must run before test modules import app code
TEST_ENV = {
    "API_KEY": "test-api-key",
    "ALLOWED_ORIGIN": "*",
    "CACHE_DIR": tempfile.mkdtemp(prefix="media-cache-test-"),
    "CACHE_TTL_HOURS": "3",
    "DELIVERY_MODE": "stream",
    "FACEBOOK_DELIVERY_MODE": "stream",
    "REQUEST_TIMEOUT": "5",
}
os.environ.update(TEST_ENV)


@pytest.fixture
def api_key():
    """Return test API key."""
    return "test-api-key"


@pytest.fixture
def api_headers(api_key):
    """Return headers with API key."""
    return {"X-API-Key": api_key}


@pytest_asyncio.fixture
async def client():
    """
    Create async test client for FastAPI app.

    Uses httpx AsyncClient with ASGITransport to test the FastAPI app
    without needing to run a server.
    """
    from main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class FakeUpstream:
    """Stand-in for a streaming requests.Response."""

    def __init__(self, body=b"fake-media-bytes", headers=None, chunk_size=4, error=None):
        self.body = body
        self.headers = headers if headers is not None else {"Content-Length": str(len(body))}
        self.chunk_size = chunk_size
        self.error = error
        self.closed = False

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.body), self.chunk_size):
            yield self.body[i:i + self.chunk_size]
        if self.error is not None:
            raise self.error

    def close(self):
        self.closed = True


@pytest.fixture
def fake_upstream():
    """Factory for fake upstream media responses."""
    return FakeUpstream


@pytest.fixture
def broken_upstream():
    """Upstream that dies half-way through the body."""
    return FakeUpstream(
        body=b"partial",
        headers={"Content-Length": "100"},
        error=requests.exceptions.ChunkedEncodingError("connection reset"),
    )


@pytest.fixture
def youtube_url():
    """Sample YouTube URL for testing."""
    return "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


@pytest.fixture
def instagram_post_url():
    """Sample Instagram post URL for testing."""
    return "https://www.instagram.com/p/ABC123/"


@pytest.fixture
def instagram_reel_url():
    """Sample Instagram reel URL for testing."""
    return "https://www.instagram.com/reel/XYZ789/"


@pytest.fixture
def facebook_url():
    """Sample Facebook URL for testing."""
    return "https://www.facebook.com/watch?v=1234567890"


@pytest.fixture
def og_image_only_html():
    """Instagram page with nothing but an og:image meta tag."""
    return (
        '<html><head>'
        '<meta property="og:image" content="https://scontent.cdninstagram.com/v/t51/photo.jpg?x=1&amp;y=2" />'
        '</head><body></body></html>'
    )


@pytest.fixture
def shared_data_html():
    """Factory for Instagram pages carrying the legacy window._sharedData payload."""
    def _build(entry_data):
        payload = json.dumps({"entry_data": entry_data})
        return f'<html><head><script type="text/javascript">window._sharedData = {payload};</script></head></html>'
    return _build


@pytest.fixture
def mock_ytdlp_info():
    """Mock yt-dlp video info response."""
    return {
        "id": "dQw4w9WgXcQ",
        "title": "My Video! #1 (HD)",
        "thumbnail": "https://i.ytimg.com/vi/dQw4w9WgXcQ/maxresdefault.jpg",
        "formats": [
            {"format_id": "140", "ext": "m4a", "vcodec": "none", "acodec": "mp4a.40.2",
             "url": "https://rr1.googlevideo.com/audio"},
            {"format_id": "136", "ext": "mp4", "height": 720, "vcodec": "avc1.4d401f", "acodec": "none",
             "url": "https://rr1.googlevideo.com/720-video-only"},
            {"format_id": "22", "ext": "mp4", "height": 720, "vcodec": "avc1.64001F", "acodec": "mp4a.40.2",
             "url": "https://rr1.googlevideo.com/720-with-audio",
             "http_headers": {"User-Agent": "yt-dlp-test"}},
            {"format_id": "18", "ext": "mp4", "height": 360, "vcodec": "avc1.42001E", "acodec": "mp4a.40.2",
             "url": "https://rr1.googlevideo.com/360-with-audio"},
        ],
    }
