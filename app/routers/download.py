"""
Download router module.

Provides endpoints for downloading media from YouTube, Instagram and Facebook:
- POST /download: Classify a URL and return a proxy download link (no upstream calls)
- GET /resolve: Resolve a URL to its direct upstream media URL
- GET /proxy: Resolve and deliver the media (stream, cached file or redirect)
"""

import logging

from fastapi import APIRouter, Query, HTTPException, Depends, Body
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.dependencies import supplied_api_key, verify_api_key, request_logger
from app.exceptions import InvalidUrl, MediaDownloadError
from app.models import DownloadRequest, DownloadResponse, MediaRequest
from app.services.cache_service import create_cache_key
from app.services.delivery_service import deliver
from app.services.media_service import build_prepared_envelope, build_resolved_envelope, resolve_media
from app.utils.platform_utils import classify_url, kind_from_type


router = APIRouter(tags=["Download"])


@router.post("/download", response_model=DownloadResponse, response_model_exclude_none=True)
async def prepare_download(
    request: DownloadRequest = Body(...),
    _: bool = Depends(verify_api_key),
    api_key: str = Depends(supplied_api_key),
    logger: logging.LoggerAdapter = Depends(request_logger),
):
    """
    Classify a URL and return a download link pointing at GET /proxy.

    Nothing is fetched from the platform here; YouTube titles and thumbnails
    are derived from the video ID. When API_KEY is configured the link
    carries the caller's key as `api_key` so a browser can follow it.

    Returns:
        DownloadResponse with downloadUrl, type, title and thumbnail

    Raises:
        InvalidUrl / InvalidVideoId / UnsupportedPlatform (400)
    """
    url = request.url.strip()
    if not url:
        raise InvalidUrl("Please provide a URL")

    kind = classify_url(url)
    logger.info(f"Prepared {kind.value} download for {url}")
    link_key = api_key if get_settings().api_key else None
    return build_prepared_envelope(url, kind, api_key=link_key)


@router.get("/resolve", response_model=DownloadResponse, response_model_exclude_none=True)
async def resolve_download(
    url: str = Query(..., description="YouTube, Instagram or Facebook URL"),
    type: str = Query(None, description="youtube, reel, post, profile or facebook (classified from url if omitted)"),
    quality: str = Query(None, description="YouTube format ID to prefer"),
    media_url: str = Query(None, description="Pre-resolved direct media URL (skips extraction)"),
    _: bool = Depends(verify_api_key),
    logger: logging.LoggerAdapter = Depends(request_logger),
):
    """
    Resolve a URL to its direct upstream media URL without downloading it.

    Returns:
        DownloadResponse with the upstream downloadUrl, fileName, contentType,
        title, thumbnail and isExternal=true
    """
    try:
        kind = kind_from_type(type) if type else None
        media_request = MediaRequest(raw_url=url, requested_quality=quality, explicit_media_url=media_url)
        kind, media = await run_in_threadpool(resolve_media, media_request, kind, logger)
        return build_resolved_envelope(kind, media)

    except (MediaDownloadError, HTTPException):
        raise
    except Exception as e:
        logger.exception(f"Resolve error: {str(e)}")
        raise MediaDownloadError()


@router.get("/proxy")
async def proxy_download(
    url: str = Query(None, description="Original platform URL"),
    type: str = Query(None, description="youtube, reel, post, profile or facebook"),
    quality: str = Query(None, description="YouTube format ID to prefer"),
    media_url: str = Query(None, description="Pre-resolved direct media URL (skips extraction)"),
    _: bool = Depends(verify_api_key),
    logger: logging.LoggerAdapter = Depends(request_logger),
):
    """
    Resolve and deliver media.

    Depending on the deployment's delivery mode the response is a streamed
    body, a file served from the media cache, or a redirect to the upstream
    URL. Errors are returned as the JSON envelope {success: false, error}.
    """
    if not url or not type:
        return JSONResponse(
            status_code=400,
            content=DownloadResponse(success=False, error="Missing URL or type").to_content()
        )

    try:
        kind = kind_from_type(type)
        media_request = MediaRequest(raw_url=url, requested_quality=quality, explicit_media_url=media_url)
        logger.info(f"Processing {kind.value} URL: {url}")

        kind, media = await run_in_threadpool(resolve_media, media_request, kind, logger)
        cache_key = create_cache_key(url)
        return await run_in_threadpool(deliver, media, cache_key, kind, logger)

    except (MediaDownloadError, HTTPException):
        raise
    except Exception as e:
        logger.exception(f"Proxy error: {str(e)}")
        raise MediaDownloadError()
