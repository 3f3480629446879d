"""
FastAPI dependency injection functions.

This module provides reusable dependencies for:
- API key authentication and verification
- Per-request logger creation for request tracing
"""

import uuid
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Query
from app.config import get_settings
from app.utils.logging_utils import get_request_logger


def supplied_api_key(
    x_api_key: str = Header(None),
    api_key: str = Query(None, include_in_schema=False),
) -> Optional[str]:
    """
    The key sent by the caller, from the X-API-Key header or the `api_key` query parameter.

    The query form lets plain browser download links (which cannot set
    headers) authenticate.
    """
    return x_api_key or api_key


def verify_api_key(key: Optional[str] = Depends(supplied_api_key)) -> bool:
    """
    Dependency to verify the caller's API key.

    When API_KEY is not configured the API is open.

    Raises HTTPException 401 if the key is missing or wrong.
    """
    settings = get_settings()
    if not settings.api_key:
        return True
    if key != settings.api_key:
        raise HTTPException(status_code=401, detail="Invalid API Key")
    return True


def request_logger() -> logging.LoggerAdapter:
    """Dependency returning a logger tagged with a fresh short request ID."""
    return get_request_logger(uuid.uuid4().hex[:8])
