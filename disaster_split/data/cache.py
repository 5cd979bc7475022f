"""
Validate-and-repair checks for locally cached dataset files.

**Conceptual**: Downloading the IHP registrations file takes a long time, so a
copy is kept on disk and reused while it is fresh. Two things go wrong with
such a cache in practice:
  - A previous run was interrupted or the server returned nothing, leaving a
    zero-byte file.
  - FEMA's CDN answered with HTTP 200 and an HTML "Access Denied" page, which
    got saved under the .csv name.

Both are detected here and the file is deleted on the spot, so no reader ever
sees it. A file that survives those checks is then judged by age: anything
older than the configured threshold (7 days by default) is refetched.

**Contract**:
  - MISSING: no file at the path → caller must fetch.
  - INVALID: empty, access-denied, stale, or age unknown → caller must fetch.
  - VALID: bytes on disk are reused unchanged.

Errors reading the modification time are deliberately mapped to INVALID
rather than raised: a refetch is always a safe answer.
"""

import os
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Optional

from disaster_split.utils.time import Clock, from_timestamp, get_real_clock


ACCESS_DENIED_MARKER = b"<TITLE>Access Denied</TITLE>"

# Only the head of a cached file is inspected for the marker; a denial page
# is tiny and starts with it.
SAMPLE_SIZE = 1024

DEFAULT_MAX_AGE = timedelta(days=7)


class CacheState(Enum):
    MISSING = "missing"
    INVALID = "invalid"
    VALID = "valid"


class InvalidReason(Enum):
    EMPTY = "empty"
    ACCESS_DENIED = "access_denied"
    STALE = "stale"
    UNKNOWN_AGE = "unknown_age"


@dataclass(frozen=True)
class CacheStatus:
    """
    Outcome of a cache check.

    Attributes:
        path: The inspected path.
        state: MISSING, INVALID or VALID.
        reason: Why the file is INVALID (None otherwise).
        deleted: True if the check removed the file from disk.
    """
    path: Path
    state: CacheState
    reason: Optional[InvalidReason] = None
    deleted: bool = False

    @property
    def needs_fetch(self) -> bool:
        return self.state is not CacheState.VALID

    def describe(self) -> str:
        """Human-readable one-liner for console output."""
        if self.state is CacheState.MISSING:
            return f"Cache file {self.path} not found, downloading..."
        if self.reason is InvalidReason.EMPTY:
            return f"Found empty file at {self.path}, deleting and redownloading..."
        if self.reason is InvalidReason.ACCESS_DENIED:
            return (
                f"Found invalid (Access Denied) content in {self.path}, "
                f"deleting and redownloading..."
            )
        if self.reason is InvalidReason.STALE:
            return f"Cache file {self.path} is older than the cache lifetime, downloading fresh copy..."
        if self.reason is InvalidReason.UNKNOWN_AGE:
            return f"Could not determine age of {self.path}, downloading fresh copy..."
        return f"Using cached file: {self.path}"


def contains_access_denied(sample: bytes) -> bool:
    return ACCESS_DENIED_MARKER in sample


def file_contains_access_denied(path: Path | str, chunk_size: int = 1024 * 1024) -> bool:
    """
    Scan an entire file for the access-denied marker.

    Reads in chunks, carrying over the tail of each chunk so a marker that
    straddles a chunk boundary is still found.

    Args:
        path: File to scan.
        chunk_size: Bytes per read.

    Returns:
        True if the marker occurs anywhere in the file.
    """
    overlap = len(ACCESS_DENIED_MARKER) - 1
    tail = b""
    with open(path, "rb") as fh:
        while True:
            chunk = fh.read(chunk_size)
            if not chunk:
                return False
            window = tail + chunk
            if ACCESS_DENIED_MARKER in window:
                return True
            tail = window[-overlap:]


def _read_sample(path: Path) -> bytes:
    with open(path, "rb") as fh:
        return fh.read(SAMPLE_SIZE)


def check_cache(
    path: Path | str,
    max_age: timedelta = DEFAULT_MAX_AGE,
    clock: Optional[Clock] = None,
) -> CacheStatus:
    """
    Decide whether a cached file can be reused, deleting it if it is corrupt.

    **Functionally**:
      1. No file → MISSING.
      2. Zero bytes → delete, INVALID(EMPTY).
      3. First 1024 bytes contain `<TITLE>Access Denied</TITLE>` → delete,
         INVALID(ACCESS_DENIED).
      4. mtime unreadable, or later than "now" → INVALID(UNKNOWN_AGE).
      5. now - mtime > max_age → INVALID(STALE). The file is left in place;
         the download overwrites it.
      6. Otherwise VALID.

    Args:
        path: Cache file location.
        max_age: Maximum age before the file is considered stale.
        clock: Time source (RealClock if omitted).

    Returns:
        CacheStatus describing the decision.

    Raises:
        OSError: If the file exists but cannot be read or deleted.
    """
    path = Path(path)
    clock = clock or get_real_clock()

    try:
        size = path.stat().st_size
    except FileNotFoundError:
        return CacheStatus(path=path, state=CacheState.MISSING)

    if size == 0:
        path.unlink()
        return CacheStatus(
            path=path, state=CacheState.INVALID, reason=InvalidReason.EMPTY, deleted=True
        )

    if contains_access_denied(_read_sample(path)):
        path.unlink()
        return CacheStatus(
            path=path,
            state=CacheState.INVALID,
            reason=InvalidReason.ACCESS_DENIED,
            deleted=True,
        )

    try:
        modified = from_timestamp(os.stat(path).st_mtime)
    except (OSError, OverflowError, ValueError):
        return CacheStatus(path=path, state=CacheState.INVALID, reason=InvalidReason.UNKNOWN_AGE)

    age = clock.now() - modified
    if age < timedelta(0):
        # mtime in the future: the clock or the filesystem is lying
        return CacheStatus(path=path, state=CacheState.INVALID, reason=InvalidReason.UNKNOWN_AGE)
    if age > max_age:
        return CacheStatus(path=path, state=CacheState.INVALID, reason=InvalidReason.STALE)

    return CacheStatus(path=path, state=CacheState.VALID)
