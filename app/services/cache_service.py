"""
Cache service module for the content-addressed media cache.

This module provides utilities for:
- Deriving the cache key (MD5 of the raw request URL)
- Finding a complete cached media file for a key
- Writing media atomically (temp file + rename) with size verification
- Serializing concurrent fetches of the same key
- Listing cache entries and cleaning up expired files
"""

import os
import time
import uuid
import hashlib
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional

from app.config import CACHE_TTL_HOURS, MEDIA_CACHE_DIR
from app.exceptions import WriteFailed
from app.models.media import CacheEntry


PARTIAL_SUFFIX = ".part"


def create_cache_key(raw_url: str) -> str:
    """Deterministic cache key for a raw request URL."""
    return hashlib.md5(raw_url.encode()).hexdigest()


def cache_file_name(cache_key: str, prefix: str, extension: str) -> str:
    """e.g. instagram-post-<key>.jpg"""
    return f"{prefix}-{cache_key}.{extension.lstrip('.')}"


def _key_from_filename(filename: str) -> Optional[str]:
    stem = filename.rsplit('.', 1)[0]
    key = stem.rsplit('-', 1)[-1]
    return key if len(key) == 32 else None


def get_cached_media(
    cache_key: str,
    prefix: str,
    extension: str,
    cache_dir: str = MEDIA_CACHE_DIR,
) -> Optional[str]:
    """
    Find the complete cached file for cache_key under this prefix/extension.

    The slot is the exact file name written by write_cache_file, so the same
    URL requested as a different type (e.g. reel vs profile) does not share
    it. Empty files are ignored.

    Returns:
        File path if cached, None otherwise
    """
    filepath = os.path.join(cache_dir, cache_file_name(cache_key, prefix, extension))
    if os.path.isfile(filepath) and os.path.getsize(filepath) > 0:
        return filepath
    return None


def write_cache_file(
    cache_key: str,
    prefix: str,
    extension: str,
    chunks: Iterable[bytes],
    expected_size: Optional[int] = None,
    cache_dir: str = MEDIA_CACHE_DIR,
) -> str:
    """
    Write media chunks to the cache atomically.

    Bytes go to a temporary `.part` file which is only renamed into place
    once it is non-empty and matches expected_size (when known). On any
    failure the temporary file is removed, so a partial download never
    looks like a cache entry.

    Raises:
        WriteFailed: disk error, empty body or size mismatch
        UpstreamFetchFailed: propagated from the chunk iterator
    """
    os.makedirs(cache_dir, exist_ok=True)
    final_path = os.path.join(cache_dir, cache_file_name(cache_key, prefix, extension))
    temp_path = os.path.join(cache_dir, f".{cache_key}.{uuid.uuid4().hex[:8]}{PARTIAL_SUFFIX}")

    written = 0
    try:
        with open(temp_path, "wb") as f:
            for chunk in chunks:
                if chunk:
                    f.write(chunk)
                    written += len(chunk)

        if written == 0:
            raise WriteFailed("Upstream returned an empty body")
        if expected_size is not None and written != expected_size:
            raise WriteFailed(f"Incomplete download: {written} of {expected_size} bytes")

        os.replace(temp_path, final_path)
    except OSError as e:
        _remove_quietly(temp_path)
        raise WriteFailed(f"Failed to write media to cache: {str(e)}")
    except BaseException:
        _remove_quietly(temp_path)
        raise

    return final_path


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


# Per-key in-flight guard: concurrent requests for one URL collapse into one upstream fetch
_inflight_guard = threading.Lock()
_inflight_locks: Dict[str, list] = {}


@contextmanager
def cache_key_lock(cache_key: str) -> Iterator[None]:
    """Hold the lock for cache_key; the lock is dropped once no request waits on it."""
    with _inflight_guard:
        entry = _inflight_locks.setdefault(cache_key, [threading.Lock(), 0])
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _inflight_guard:
            entry[1] -= 1
            if entry[1] == 0:
                _inflight_locks.pop(cache_key, None)


def list_cache_entries(cache_dir: str = MEDIA_CACHE_DIR) -> List[CacheEntry]:
    """Complete cache entries, newest first."""
    entries = []
    if not os.path.exists(cache_dir):
        return entries

    for filename in os.listdir(cache_dir):
        if filename.endswith(PARTIAL_SUFFIX):
            continue
        key = _key_from_filename(filename)
        filepath = os.path.join(cache_dir, filename)
        if key is None or not os.path.isfile(filepath):
            continue
        stat = os.stat(filepath)
        entries.append(CacheEntry(
            url_hash=key,
            file_path=filepath,
            created_at=datetime.fromtimestamp(stat.st_mtime),
            size_bytes=stat.st_size,
        ))

    entries.sort(key=lambda e: e.created_at, reverse=True)
    return entries


def cleanup_cache(ttl_hours: int = CACHE_TTL_HOURS, cache_dir: str = MEDIA_CACHE_DIR) -> Dict[str, int]:
    """
    Delete cached files older than TTL.

    Only called from the external housekeeping endpoint; the download path
    never evicts. Stale `.part` files left by crashed writes are removed too.

    Returns:
        Dictionary containing:
        - total_deleted: Number of files deleted
        - freed_bytes: Total disk space freed in bytes
    """
    cutoff = time.time() - (ttl_hours * 3600)
    total_deleted = 0
    freed_bytes = 0

    if os.path.exists(cache_dir):
        for filename in os.listdir(cache_dir):
            filepath = os.path.join(cache_dir, filename)
            if os.path.isfile(filepath) and os.path.getmtime(filepath) < cutoff:
                freed_bytes += os.path.getsize(filepath)
                os.remove(filepath)
                total_deleted += 1

    return {
        "total_deleted": total_deleted,
        "freed_bytes": freed_bytes
    }
