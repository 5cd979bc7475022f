"""
Dataset loader: cache check, fetch if needed, open a reader.

**Conceptual**: Callers never open a cached CSV directly. They ask
`load_dataset(url, cache_path, client)` and get back a DatasetReader over a
file that has just passed the cache checks (or was just downloaded).

**Functionally**:
  1. check_cache() inspects the file, deleting it if it is empty or a denial
     page.
  2. If the check says MISSING/INVALID, the client downloads the URL
     synchronously over the cache path.
  3. A fresh DatasetReader is opened, positioned before the header row.

Calling load_dataset() twice for the same path returns two independent
readers. The second call re-runs the cache check, which is cheap and finds
the file that the first call just validated or fetched.
"""

from datetime import timedelta
from pathlib import Path
from typing import Optional, Protocol

from disaster_split.data.cache import DEFAULT_MAX_AGE, CacheStatus, check_cache
from disaster_split.data.io import DatasetReader
from disaster_split.utils.time import Clock


class Downloader(Protocol):
    """Anything that can fetch a URL to a local path (FemaClient in production)."""

    def download_csv(self, url: str, destination: Path | str) -> int:
        ...


def ensure_cached(
    url: str,
    cache_path: Path | str,
    client: Downloader,
    max_age: timedelta = DEFAULT_MAX_AGE,
    clock: Optional[Clock] = None,
) -> CacheStatus:
    """
    Make sure `cache_path` holds a usable copy of `url`.

    Args:
        url: Remote CSV location.
        cache_path: Local cache file.
        client: Downloader used when the cache is missing or invalid.
        max_age: Cache lifetime.
        clock: Time source for the age check.

    Returns:
        The CacheStatus observed before any download.

    Raises:
        FemaClientError: If a required download fails.
        OSError: If the cache file cannot be inspected or removed.
    """
    status = check_cache(cache_path, max_age=max_age, clock=clock)
    print(status.describe())
    if status.needs_fetch:
        client.download_csv(url, cache_path)
    return status


def load_dataset(
    url: str,
    cache_path: Path | str,
    client: Downloader,
    max_age: timedelta = DEFAULT_MAX_AGE,
    clock: Optional[Clock] = None,
) -> DatasetReader:
    """
    Return a reader over a validated local copy of `url`.

    Args:
        url: Remote CSV location.
        cache_path: Local cache file.
        client: Downloader used when the cache is missing or invalid.
        max_age: Cache lifetime.
        clock: Time source for the age check.

    Returns:
        DatasetReader positioned before the header row. Caller closes it
        (it is a context manager).

    Raises:
        FemaClientError: If a required download fails.
        OSError: If the file cannot be inspected, removed, or opened.

    Example:
        >>> with load_dataset(settings.fema.ihp_url, "ihp.csv", client) as reader:
        ...     print(reader.header[:3])
    """
    ensure_cached(url, cache_path, client, max_age=max_age, clock=clock)
    print(f"Loading file from {cache_path}")
    reader = DatasetReader(cache_path)
    print(f"Successfully loaded file from {cache_path}")
    return reader
