"""
Upstream HTTP service module.

Thin helpers around requests for talking to the platforms:
- Browser-like request headers
- Explicit session context (cookies + referer) for cookie priming
- Page HTML fetches
- Opening media byte streams
"""

from typing import Dict, Optional

import requests
from pydantic import BaseModel, ConfigDict

from app.config import REQUEST_TIMEOUT, USER_AGENT
from app.exceptions import UpstreamFetchFailed


HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
MEDIA_ACCEPT = "video/mp4,video/*;q=0.9,image/*;q=0.8,*/*;q=0.5"


class SessionContext(BaseModel):
    """Cookies and referer captured by priming, passed explicitly into later fetches."""
    model_config = ConfigDict(frozen=True)

    cookie_header: Optional[str] = None
    referer: Optional[str] = None

    @property
    def is_primed(self) -> bool:
        return bool(self.cookie_header)


def browser_headers(
    accept: str = HTML_ACCEPT,
    session: Optional[SessionContext] = None,
    extra: Optional[Dict[str, str]] = None,
) -> Dict[str, str]:
    """Build browser-like request headers, adding session cookie/referer when present."""
    headers = {
        "User-Agent": USER_AGENT,
        "Accept": accept,
        "Accept-Language": "en-US,en;q=0.5",
    }
    if session is not None:
        if session.cookie_header:
            headers["Cookie"] = session.cookie_header
        if session.referer:
            headers["Referer"] = session.referer
    if extra:
        headers.update(extra)
    return headers


def fetch_html(url: str, session: Optional[SessionContext] = None, timeout: float = REQUEST_TIMEOUT) -> str:
    """
    Fetch a page and return its HTML.

    Raises:
        UpstreamFetchFailed: network error or non-2xx status
    """
    try:
        response = requests.get(url, headers=browser_headers(session=session), timeout=timeout)
    except requests.RequestException as e:
        raise UpstreamFetchFailed(f"Failed to fetch page: {str(e)}")

    if not response.ok:
        raise UpstreamFetchFailed(f"Failed to fetch page: HTTP {response.status_code} {response.reason}")
    return response.text


def prime_session(home_url: str, timeout: float = REQUEST_TIMEOUT) -> SessionContext:
    """
    Request a platform home page and capture the cookies it sets.

    Best-effort: any failure returns an empty context rather than raising.
    """
    try:
        response = requests.get(home_url, headers=browser_headers(), timeout=timeout)
    except requests.RequestException:
        return SessionContext()

    cookies = "; ".join(f"{cookie.name}={cookie.value}" for cookie in response.cookies)
    return SessionContext(cookie_header=cookies or None, referer=home_url)


def open_media_stream(
    url: str,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = REQUEST_TIMEOUT,
) -> requests.Response:
    """
    Open a streaming GET for media bytes. Caller must close the response.

    Raises:
        UpstreamFetchFailed: network error or non-2xx status
    """
    request_headers = browser_headers(accept=MEDIA_ACCEPT, extra=headers)
    try:
        response = requests.get(url, headers=request_headers, stream=True, timeout=timeout)
    except requests.RequestException as e:
        raise UpstreamFetchFailed(f"Failed to fetch media: {str(e)}")

    if not response.ok:
        status = f"HTTP {response.status_code} {response.reason}"
        response.close()
        raise UpstreamFetchFailed(f"Failed to fetch media: {status}")
    return response
