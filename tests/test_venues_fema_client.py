"""
Tests for FemaClient streaming downloads.

**Purpose**: Verify that FemaClient sends the identity headers, streams the
body to disk, rejects non-2xx statuses, and deletes "successful" downloads
that turn out to be FEMA's Access Denied page.

**Testing philosophy**: Use mocked HTTP responses (no real network calls).
requests.Session.get is patched, so the tests are fast and deterministic
and can exercise failure modes that are hard to trigger against the real
server.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from disaster_split.config.settings import FemaSettings
from disaster_split.data.cache import ACCESS_DENIED_MARKER
from disaster_split.venues.fema_client import (
    FemaAccessDeniedError,
    FemaClient,
    FemaClientError,
    FemaHTTPError,
)


URL = "https://www.fema.gov/api/open/v1/FemaWebDisasterDeclarations.csv"
BODY_CHUNKS = [b"id,name,disaster,amount\n", b"1,A,100,50\n", b"2,B,200,10\n"]


@pytest.fixture
def fema_settings():
    """
    Create test settings for FemaClient.

    Returns:
        FemaSettings with a small chunk size and a custom identity.
    """
    return FemaSettings(
        user_agent="test-agent/1.0",
        referer="https://www.fema.gov/",
        chunk_size=8,
    )


def make_response(status_code=200, chunks=None, content_length=None):
    response = Mock()
    response.status_code = status_code
    response.headers = {} if content_length is None else {"Content-Length": str(content_length)}
    response.iter_content.return_value = list(chunks or [])
    return response


def test_client_initialization_sets_identity_headers(fema_settings):
    client = FemaClient(fema_settings)

    assert client.session.headers["User-Agent"] == "test-agent/1.0"
    assert client.session.headers["Referer"] == "https://www.fema.gov/"


@patch("disaster_split.venues.fema_client.requests.Session.get")
def test_download_streams_body_to_destination(mock_get, fema_settings, tmp_path):
    body = b"".join(BODY_CHUNKS)
    mock_get.return_value = make_response(chunks=BODY_CHUNKS, content_length=len(body))
    destination = tmp_path / "decl.csv"

    client = FemaClient(fema_settings, show_progress=False)
    written = client.download_csv(URL, destination)

    assert written == len(body)
    assert destination.read_bytes() == body
    assert not (tmp_path / "decl.csv.part").exists()

    call_args = mock_get.call_args
    assert call_args.args[0] == URL
    assert call_args.kwargs["stream"] is True
    assert call_args.kwargs["timeout"] is None
    mock_get.return_value.iter_content.assert_called_once_with(chunk_size=8)
    mock_get.return_value.close.assert_called_once()


@patch("disaster_split.venues.fema_client.requests.Session.get")
def test_download_creates_parent_directories(mock_get, fema_settings, tmp_path):
    mock_get.return_value = make_response(chunks=BODY_CHUNKS)
    destination = tmp_path / "cache" / "deep" / "decl.csv"

    FemaClient(fema_settings, show_progress=False).download_csv(URL, destination)

    assert destination.exists()


@patch("disaster_split.venues.fema_client.requests.Session.get")
def test_download_overwrites_stale_cache(mock_get, fema_settings, tmp_path):
    destination = tmp_path / "decl.csv"
    destination.write_bytes(b"old,data\n" * 50)
    mock_get.return_value = make_response(chunks=BODY_CHUNKS)

    FemaClient(fema_settings, show_progress=False).download_csv(URL, destination)

    assert destination.read_bytes() == b"".join(BODY_CHUNKS)


@patch("disaster_split.venues.fema_client.requests.Session.get")
def test_download_skips_keepalive_chunks(mock_get, fema_settings, tmp_path):
    mock_get.return_value = make_response(chunks=[b"a,b\n", b"", b"1,2\n"])
    destination = tmp_path / "decl.csv"

    written = FemaClient(fema_settings, show_progress=False).download_csv(URL, destination)

    assert written == 8
    assert destination.read_bytes() == b"a,b\n1,2\n"


@patch("disaster_split.venues.fema_client.requests.Session.get")
def test_configured_timeout_is_passed(mock_get, tmp_path):
    mock_get.return_value = make_response(chunks=BODY_CHUNKS)
    settings = FemaSettings(timeout_seconds=45.0)

    FemaClient(settings, show_progress=False).download_csv(URL, tmp_path / "decl.csv")

    assert mock_get.call_args.kwargs["timeout"] == 45.0


@pytest.mark.parametrize("status", [403, 404, 500, 503])
@patch("disaster_split.venues.fema_client.requests.Session.get")
def test_non_success_status_raises(mock_get, status, fema_settings, tmp_path):
    mock_get.return_value = make_response(status_code=status, chunks=BODY_CHUNKS)
    destination = tmp_path / "decl.csv"

    client = FemaClient(fema_settings, show_progress=False)
    with pytest.raises(FemaHTTPError) as exc_info:
        client.download_csv(URL, destination)

    assert exc_info.value.status_code == status
    assert str(status) in str(exc_info.value)
    assert not destination.exists()
    mock_get.return_value.close.assert_called_once()


@patch("disaster_split.venues.fema_client.requests.Session.get")
def test_access_denied_body_is_deleted(mock_get, fema_settings, tmp_path):
    """A 200 response carrying the denial page must not survive as a cache file."""
    page = b"<HTML><HEAD>\n" + ACCESS_DENIED_MARKER + b"\n</HEAD></HTML>\n"
    mock_get.return_value = make_response(chunks=[page[:10], page[10:]])
    destination = tmp_path / "decl.csv"

    client = FemaClient(fema_settings, show_progress=False)
    with pytest.raises(FemaAccessDeniedError, match="Access Denied"):
        client.download_csv(URL, destination)

    assert not destination.exists()


@patch("disaster_split.venues.fema_client.requests.Session.get")
def test_access_denied_anywhere_in_body_is_detected(mock_get, fema_settings, tmp_path):
    """Unlike the cache check, the post-download scan covers the whole file."""
    filler = b"id,name,disaster\n" + b"1,A,100\n" * 500
    mock_get.return_value = make_response(chunks=[filler, ACCESS_DENIED_MARKER])
    destination = tmp_path / "decl.csv"

    with pytest.raises(FemaAccessDeniedError):
        FemaClient(fema_settings, show_progress=False).download_csv(URL, destination)

    assert not destination.exists()


@patch("disaster_split.venues.fema_client.requests.Session.get")
def test_connection_error_raises_client_error(mock_get, fema_settings, tmp_path):
    mock_get.side_effect = requests.ConnectionError("connection refused")

    client = FemaClient(fema_settings, show_progress=False)
    with pytest.raises(FemaClientError, match="Failed to connect"):
        client.download_csv(URL, tmp_path / "decl.csv")


@patch("disaster_split.venues.fema_client.requests.Session.get")
def test_interrupted_transfer_leaves_no_partial_file(mock_get, fema_settings, tmp_path):
    response = make_response()
    response.iter_content.side_effect = requests.exceptions.ChunkedEncodingError("reset")
    mock_get.return_value = response
    destination = tmp_path / "decl.csv"

    client = FemaClient(fema_settings, show_progress=False)
    with pytest.raises(FemaClientError, match="Transfer interrupted"):
        client.download_csv(URL, destination)

    assert not destination.exists()
    assert not (tmp_path / "decl.csv.part").exists()


def test_empty_url_rejected(fema_settings, tmp_path):
    with pytest.raises(ValueError, match="url cannot be empty"):
        FemaClient(fema_settings).download_csv("", tmp_path / "decl.csv")


def test_client_context_manager_closes_session(fema_settings):
    with patch.object(requests.Session, "close") as mock_close:
        with FemaClient(fema_settings) as client:
            assert isinstance(client, FemaClient)

    mock_close.assert_called_once()


def test_http_error_carries_status_and_url():
    err = FemaHTTPError(404, URL)

    assert err.status_code == 404
    assert err.url == URL
    assert isinstance(err, FemaClientError)
