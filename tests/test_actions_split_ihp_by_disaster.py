"""
Tests for the split_ihp_by_disaster action script.

**Purpose**: Verify argument handling, settings overrides and exit codes.
FemaClient.download_csv is patched, so no network access happens.
"""

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

# Add project root to path so we can import actions module
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from actions.split_ihp_by_disaster import apply_overrides, main, parse_args
from disaster_split.config.settings import Settings, reset_settings
from disaster_split.venues.fema_client import FemaAccessDeniedError, FemaHTTPError


EXAMPLE_CSV = b"id,name,disaster,amount\n1,A,100,50\n2,B,200,10\n3,C,100,20\n"


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    for name in ("OUTPUT_DIR", "IHP_CACHE_PATH", "DECLARATIONS_CACHE_PATH", "MAX_CACHE_AGE_DAYS"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


def fake_download(self, url, destination):
    Path(destination).parent.mkdir(parents=True, exist_ok=True)
    Path(destination).write_bytes(EXAMPLE_CSV)
    return len(EXAMPLE_CSV)


def cli_args(tmp_path, *extra):
    return [
        "--output-dir", str(tmp_path / "csvs"),
        "--cache-path", str(tmp_path / "ihp.csv"),
        "--declarations-cache-path", str(tmp_path / "decl.csv"),
        "--no-progress",
        *extra,
    ]


def test_parse_args_defaults():
    args = parse_args([])

    assert args.output_dir is None
    assert args.cache_path is None
    assert args.summary is None
    assert not args.skip_declarations
    assert not args.no_progress


def test_apply_overrides_only_touches_given_paths():
    settings = Settings()
    args = parse_args(["--output-dir", "elsewhere"])

    updated = apply_overrides(settings, args)

    assert updated.pipeline.output_dir == Path("elsewhere")
    assert updated.pipeline.ihp_cache_path == settings.pipeline.ihp_cache_path
    assert updated.fema == settings.fema


def test_apply_overrides_without_options_returns_same_settings():
    settings = Settings()

    assert apply_overrides(settings, parse_args([])) is settings


@patch("actions.split_ihp_by_disaster.FemaClient.download_csv", new=fake_download)
def test_main_success_writes_groups_and_summary(tmp_path, capsys):
    summary_path = tmp_path / "reports" / "summary.csv"

    with pytest.raises(SystemExit) as exc_info:
        main(cli_args(tmp_path, "--summary", str(summary_path)))

    assert exc_info.value.code == 0
    assert sorted(p.name for p in (tmp_path / "csvs").iterdir()) == ["100.csv", "200.csv"]
    assert summary_path.exists()
    out = capsys.readouterr().out
    assert "Found 2 unique disaster numbers" in out
    assert "Process complete!" in out


def test_main_http_error_exits_2(tmp_path, capsys):
    def failing(self, url, destination):
        raise FemaHTTPError(503, url)

    with patch("actions.split_ihp_by_disaster.FemaClient.download_csv", new=failing):
        with pytest.raises(SystemExit) as exc_info:
            main(cli_args(tmp_path))

    assert exc_info.value.code == 2
    assert "HTTP 503" in capsys.readouterr().err
    assert not (tmp_path / "csvs").exists()


def test_main_access_denied_exits_2(tmp_path, capsys):
    def denied(self, url, destination):
        raise FemaAccessDeniedError("Received Access Denied response from server")

    with patch("actions.split_ihp_by_disaster.FemaClient.download_csv", new=denied):
        with pytest.raises(SystemExit) as exc_info:
            main(cli_args(tmp_path))

    assert exc_info.value.code == 2
    assert "Access Denied" in capsys.readouterr().err


@patch("actions.split_ihp_by_disaster.FemaClient.download_csv", new=fake_download)
def test_main_filesystem_error_exits_2(tmp_path, capsys):
    (tmp_path / "csvs").write_text("a file where the output directory should be")

    with pytest.raises(SystemExit) as exc_info:
        main(cli_args(tmp_path))

    assert exc_info.value.code == 2
    assert "filesystem" in capsys.readouterr().err


def test_main_bad_environment_exits_1(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("MAX_CACHE_AGE_DAYS", "never")

    with pytest.raises(SystemExit) as exc_info:
        main(cli_args(tmp_path))

    assert exc_info.value.code == 1
    assert "MAX_CACHE_AGE_DAYS" in capsys.readouterr().err
