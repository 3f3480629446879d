"""
Delivery service module.

Turns a ResolvedMedia into an HTTP response according to its delivery mode:
- REDIRECT: 302 to the upstream URL, nothing is fetched
- STREAM: upstream bytes piped chunk by chunk to the client
- CACHED_FILE: served from the on-disk cache, fetching upstream only on a miss
"""

import logging
from typing import Iterator, Optional

import requests
from fastapi.responses import FileResponse, RedirectResponse, StreamingResponse
from starlette.responses import Response

from app.config import MEDIA_CACHE_DIR, STREAM_CHUNK_SIZE
from app.exceptions import UpstreamFetchFailed
from app.models.media import DeliveryMode, PlatformKind, ResolvedMedia
from app.services.cache_service import cache_key_lock, get_cached_media, write_cache_file
from app.services.http_service import open_media_stream
from app.utils.filename_utils import encode_content_disposition_filename
from app.utils.logging_utils import get_request_logger


NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def _content_length(upstream: requests.Response) -> Optional[int]:
    # requests transparently decodes gzip/deflate, so the header only describes raw bytes
    if upstream.headers.get("Content-Encoding"):
        return None
    value = upstream.headers.get("Content-Length")
    return int(value) if value and value.isdigit() else None


def iter_upstream(
    upstream: requests.Response,
    logger: logging.LoggerAdapter,
    chunk_size: int = STREAM_CHUNK_SIZE,
) -> Iterator[bytes]:
    """
    Yield upstream chunks, always closing the upstream connection.

    A mid-stream upstream error aborts with UpstreamFetchFailed instead of
    silently ending a truncated body. The finally block also runs when the
    client disconnects and the generator is closed.
    """
    try:
        for chunk in upstream.iter_content(chunk_size=chunk_size):
            if chunk:
                yield chunk
    except requests.RequestException as e:
        logger.error(f"Upstream stream failed: {str(e)}")
        raise UpstreamFetchFailed(f"Upstream stream failed: {str(e)}")
    finally:
        upstream.close()


def ensure_cached(
    media: ResolvedMedia,
    cache_key: str,
    prefix: str,
    logger: logging.LoggerAdapter,
    cache_dir: str = MEDIA_CACHE_DIR,
) -> str:
    """
    Return the cached file for cache_key, fetching and persisting it on a miss.

    The per-key lock makes a concurrent identical request wait for the first
    one's write and then reuse its file.
    """
    with cache_key_lock(cache_key):
        cached_path = get_cached_media(cache_key, prefix, media.extension, cache_dir=cache_dir)
        if cached_path:
            logger.info(f"Cache HIT {cache_key} -> {cached_path}")
            return cached_path

        logger.info(f"Cache MISS {cache_key}, fetching upstream")
        upstream = open_media_stream(media.source_url, headers=media.request_headers)
        try:
            path = write_cache_file(
                cache_key,
                prefix,
                media.extension,
                iter_upstream(upstream, logger),
                expected_size=_content_length(upstream),
                cache_dir=cache_dir,
            )
        finally:
            upstream.close()
        logger.info(f"Cached media at {path}")
        return path


def deliver(
    media: ResolvedMedia,
    cache_key: str,
    kind: PlatformKind,
    logger: Optional[logging.LoggerAdapter] = None,
    cache_dir: str = MEDIA_CACHE_DIR,
) -> Response:
    """
    Build the response for resolved media.

    Blocking (opens upstream connections / writes files); call from a threadpool.

    Raises:
        UpstreamFetchFailed: upstream could not be opened
        WriteFailed: cached write failed verification
    """
    if logger is None:
        logger = get_request_logger("-")

    disposition = {"Content-Disposition": encode_content_disposition_filename(media.suggested_filename)}

    if media.delivery_mode == DeliveryMode.REDIRECT:
        logger.info("Redirecting client to upstream media URL")
        return RedirectResponse(media.source_url, status_code=302)

    if media.delivery_mode == DeliveryMode.CACHED_FILE:
        path = ensure_cached(media, cache_key, kind.cache_prefix, logger, cache_dir=cache_dir)
        return FileResponse(path, media_type=media.content_type, headers=disposition)

    upstream = open_media_stream(media.source_url, headers=media.request_headers)
    headers = {**disposition, **NO_STORE_HEADERS}
    length = _content_length(upstream)
    if length is not None:
        headers["Content-Length"] = str(length)

    logger.info(f"Streaming {media.content_type} to client as {media.suggested_filename}")
    return StreamingResponse(
        iter_upstream(upstream, logger),
        media_type=media.content_type,
        headers=headers,
    )
