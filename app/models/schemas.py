"""
Pydantic models for request/response validation.

This module contains the API-facing schemas. The response envelope is
serialized with camelCase keys (downloadUrl, fileName, ...) to match what
browser clients of the download page expect.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional


class DownloadRequest(BaseModel):
    """Request body for POST /api/download."""
    url: str = Field("", description="YouTube, Instagram or Facebook URL")


class DownloadResponse(BaseModel):
    """Structured success/error envelope shared by every JSON endpoint."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    message: Optional[str] = None
    download_url: Optional[str] = None
    file_name: Optional[str] = None
    content_type: Optional[str] = None
    title: Optional[str] = None
    thumbnail: Optional[str] = None
    type: Optional[str] = None
    is_external: Optional[bool] = None
    error: Optional[str] = None

    def to_content(self) -> dict:
        """Serialize for a JSONResponse: camelCase keys, unset fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


class CacheFileInfo(BaseModel):
    """One cached media file as reported by GET /cache."""
    filename: str
    url_hash: str
    path: str
    size_bytes: int
    created_at: str
    age_hours: float


class CacheListResponse(BaseModel):
    files: List[CacheFileInfo]
    total_files: int
    total_size_bytes: int
    ttl_hours: int
