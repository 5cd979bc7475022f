"""
HTTP client for downloading OpenFEMA CSV files.

**Conceptual**: This module is a thin wrapper around a requests Session. It
knows how to talk to www.fema.gov (browser-like identity headers, streaming
large bodies to disk) and how FEMA fails (non-2xx status, or a 200 response
whose body is an "Access Denied" HTML page). It does NOT decide whether a
download is needed; that is the cache validator's job, and the loader wires
the two together.

**Download mechanics**:
  - One GET per call, no retries.
  - The body is streamed in chunks to `<destination>.part` and renamed over
    the destination only when the transfer finished, so an interrupted
    download never leaves a truncated file that looks like a valid cache.
  - Byte progress is shown with tqdm.
  - The complete file is then scanned for the access-denied marker; a hit
    deletes the file and raises FemaAccessDeniedError.
"""

import os
from pathlib import Path
from typing import Optional

import requests
from tqdm import tqdm

from disaster_split.config.settings import FemaSettings
from disaster_split.data.cache import file_contains_access_denied


class FemaClientError(Exception):
    """
    Base exception for download failures.

    Callers catch this to handle every transport-level problem (connection
    refused, DNS failure, bad status, denial page) in one place.
    """
    pass


class FemaHTTPError(FemaClientError):
    """
    Raised when the server answers with a non-success status code.

    Attributes:
        status_code: HTTP status returned by the server.
        url: Requested URL.
    """

    def __init__(self, status_code: int, url: str, message: Optional[str] = None):
        self.status_code = status_code
        self.url = url
        super().__init__(message or f"HTTP error: {status_code} while downloading {url}")


class FemaAccessDeniedError(FemaClientError):
    """
    Raised when a "successful" download turns out to be FEMA's denial page.

    **Recovery**: usually the identity headers are being rejected; check
    FEMA_USER_AGENT / FEMA_REFERER, or try again later.
    """
    pass


class FemaClient:
    """
    Streaming CSV downloader for FEMA endpoints.

    **Example usage**:
        >>> from disaster_split.config.settings import get_settings
        >>> with FemaClient(get_settings().fema) as client:
        ...     client.download_csv(
        ...         "https://www.fema.gov/api/open/v1/FemaWebDisasterDeclarations.csv",
        ...         "FemaWebDisasterDeclarations.csv",
        ...     )
    """

    def __init__(self, settings: FemaSettings, show_progress: bool = True):
        """
        Args:
            settings: URLs, identity headers, timeout and chunk size.
            show_progress: Display a tqdm byte progress bar while downloading.
        """
        self.settings = settings
        self.show_progress = show_progress
        self.session = requests.Session()
        self.session.headers.update({
            "User-Agent": self.settings.user_agent,
            "Referer": self.settings.referer,
        })

    def download_csv(self, url: str, destination: Path | str) -> int:
        """
        Download `url` to `destination`, streaming the body to disk.

        Args:
            url: Remote CSV location.
            destination: Local path; parent directories are created.

        Returns:
            Number of bytes written.

        Raises:
            FemaHTTPError: Non-2xx response status.
            FemaAccessDeniedError: Body contained the access-denied marker
                (the file has been deleted).
            FemaClientError: Connection failure or interrupted transfer.
            OSError: The destination could not be written.
        """
        if not url:
            raise ValueError("url cannot be empty")

        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        part_path = destination.with_name(destination.name + ".part")

        print(f"Downloading {url} to {destination}...")

        try:
            response = self.session.get(
                url,
                stream=True,
                timeout=self.settings.timeout_seconds,
            )
        except requests.ConnectionError as e:
            raise FemaClientError(
                f"Failed to connect to {url}. Check network connection."
            ) from e
        except requests.RequestException as e:
            raise FemaClientError(f"HTTP request to {url} failed: {e}") from e

        try:
            if not 200 <= response.status_code < 300:
                print(f"Failed to download file: {response.status_code}")
                raise FemaHTTPError(response.status_code, url)

            downloaded = self._stream_to_file(response, part_path)
        finally:
            response.close()

        os.replace(part_path, destination)
        print(f"File downloaded successfully to {destination}")

        if file_contains_access_denied(destination):
            destination.unlink()
            raise FemaAccessDeniedError(
                f"Received Access Denied response from server for {url}"
            )

        return downloaded

    def _stream_to_file(self, response: requests.Response, part_path: Path) -> int:
        content_length = response.headers.get("Content-Length")
        total = int(content_length) if content_length and content_length.isdigit() else None

        downloaded = 0
        try:
            with open(part_path, "wb") as fh, tqdm(
                total=total,
                unit="B",
                unit_scale=True,
                unit_divisor=1024,
                desc=part_path.name[: -len(".part")],
                disable=not self.show_progress,
            ) as pbar:
                for chunk in response.iter_content(chunk_size=self.settings.chunk_size):
                    if not chunk:
                        continue
                    fh.write(chunk)
                    downloaded += len(chunk)
                    pbar.update(len(chunk))
        except requests.RequestException as e:
            part_path.unlink(missing_ok=True)
            raise FemaClientError(
                f"Transfer interrupted after {downloaded} bytes: {e}"
            ) from e
        except OSError:
            part_path.unlink(missing_ok=True)
            raise

        return downloaded

    def close(self):
        """Close the HTTP session and release pooled connections."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
