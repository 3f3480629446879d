"""
Cache router module for managing the media cache.

This module provides endpoints for:
- Listing cached media files
- Cleaning up expired cache files (external housekeeping trigger)
"""

import os
import time
from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import verify_api_key
from app.config import CACHE_TTL_HOURS
from app.models import CacheFileInfo, CacheListResponse
from app.services.cache_service import cleanup_cache, list_cache_entries


router = APIRouter(tags=["Cache"])


@router.delete("/cache/cleanup")
async def cache_cleanup(_: bool = Depends(verify_api_key)):
    """
    Delete all cached media older than CACHE_TTL_HOURS.

    The download path never evicts; this is the hook for external retention:
    - Cron job target: 0 * * * * curl -X DELETE .../cache/cleanup
    - Manual cleanup trigger
    """
    result = cleanup_cache()
    return {
        "message": f"Cleanup complete. Deleted {result['total_deleted']} files.",
        "deleted": result["total_deleted"],
        "freed_bytes": result["freed_bytes"],
        "ttl_hours": CACHE_TTL_HOURS
    }


@router.get("/cache", response_model=CacheListResponse)
async def list_cache(_: bool = Depends(verify_api_key)):
    """List all cached media files with metadata, newest first."""
    try:
        now = time.time()
        files = [
            CacheFileInfo(
                filename=os.path.basename(entry.file_path),
                url_hash=entry.url_hash,
                path=entry.file_path,
                size_bytes=entry.size_bytes,
                created_at=entry.created_at.isoformat(),
                age_hours=round((now - entry.created_at.timestamp()) / 3600, 2),
            )
            for entry in list_cache_entries()
        ]
    except OSError as e:
        raise HTTPException(status_code=500, detail=f"Error listing cache: {str(e)}")

    return CacheListResponse(
        files=files,
        total_files=len(files),
        total_size_bytes=sum(f.size_bytes for f in files),
        ttl_hours=CACHE_TTL_HOURS,
    )
