"""
Configuration settings for the FEMA download-and-split pipeline.

**Conceptual**: This module provides strongly-typed configuration objects that
load from environment variables (optionally via a .env file). Every value has
a default that reproduces the standard run (FEMA OpenFEMA URLs, cache files
named after the remote files, output in ./csvs, 7-day cache lifetime,
grouping on the third column), so no configuration is required at all.
Overrides are validated at startup, ensuring fail-fast behavior on typos
such as a non-numeric cache age.

**Why centralized config?**
  - Single source of truth for URLs, identity headers and paths.
  - Easy to test (construct settings objects directly instead of reading env).
  - Fail-fast validation (bad GROUP_COLUMN_INDEX → clear error at startup,
    not halfway through a million-row grouping pass).

This module uses python-dotenv to load .env files and dataclasses for type safety.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from project root (no-op if the file does not exist)
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


DEFAULT_IHP_URL = (
    "https://www.fema.gov/about/reports-and-data/openfema/"
    "IndividualsAndHouseholdsProgramValidRegistrations.csv"
)
DEFAULT_DECLARATIONS_URL = (
    "https://www.fema.gov/api/open/v1/FemaWebDisasterDeclarations.csv"
)

# FEMA's CDN rejects requests that do not look like a browser.
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
DEFAULT_REFERER = "https://www.fema.gov/"

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_MAX_CACHE_AGE_DAYS = 7
DEFAULT_GROUP_COLUMN_INDEX = 2


def _int_from_env(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw}")


def _optional_float_from_env(name: str) -> Optional[float]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got: {raw}")


@dataclass(frozen=True)
class FemaSettings:
    """
    Configuration for downloading OpenFEMA CSV files.

    **Conceptual**: OpenFEMA publishes its datasets as plain CSV over HTTPS.
    No API key is needed, but the CDN in front of www.fema.gov serves an
    "Access Denied" HTML page to clients that do not present browser-like
    identity headers, so the User-Agent and Referer are part of the config.

    Attributes:
        ihp_url: Individuals and Households Program registrations CSV (grouped).
        declarations_url: Web disaster declarations CSV (cached alongside).
        user_agent: User-Agent header sent with every request.
        referer: Referer header sent with every request.
        timeout_seconds: Optional socket timeout. None means no timeout,
                         which is the default: the IHP file is several GB
                         and a slow transfer is still a good transfer.
        chunk_size: Bytes per chunk when streaming the body to disk.
    """
    ihp_url: str = DEFAULT_IHP_URL
    declarations_url: str = DEFAULT_DECLARATIONS_URL
    user_agent: str = DEFAULT_USER_AGENT
    referer: str = DEFAULT_REFERER
    timeout_seconds: Optional[float] = None
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self):
        """Validate settings after initialization."""
        if not self.ihp_url:
            raise ValueError("FEMA_IHP_URL is required but empty.")
        if not self.declarations_url:
            raise ValueError("FEMA_DECLARATIONS_URL is required but empty.")
        if self.chunk_size <= 0:
            raise ValueError(
                f"chunk_size must be positive, got: {self.chunk_size}"
            )
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError(
                f"timeout_seconds must be positive when set, got: {self.timeout_seconds}"
            )

    @classmethod
    def from_env(cls) -> "FemaSettings":
        """
        Load FEMA download settings from environment variables.

        **Environment variables** (all optional):
          - FEMA_IHP_URL
          - FEMA_DECLARATIONS_URL
          - FEMA_USER_AGENT
          - FEMA_REFERER
          - FEMA_TIMEOUT_SECONDS (unset = no timeout)
          - FEMA_CHUNK_SIZE (default 65536)

        Returns:
            FemaSettings object with values loaded from environment.

        Raises:
            ValueError: If a numeric variable cannot be parsed.
        """
        return cls(
            ihp_url=os.getenv("FEMA_IHP_URL", DEFAULT_IHP_URL),
            declarations_url=os.getenv("FEMA_DECLARATIONS_URL", DEFAULT_DECLARATIONS_URL),
            user_agent=os.getenv("FEMA_USER_AGENT", DEFAULT_USER_AGENT),
            referer=os.getenv("FEMA_REFERER", DEFAULT_REFERER),
            timeout_seconds=_optional_float_from_env("FEMA_TIMEOUT_SECONDS"),
            chunk_size=_int_from_env("FEMA_CHUNK_SIZE", str(DEFAULT_CHUNK_SIZE)),
        )


@dataclass(frozen=True)
class PipelineSettings:
    """
    Local paths and grouping parameters.

    Attributes:
        ihp_cache_path: Where the IHP CSV is cached.
        declarations_cache_path: Where the declarations CSV is cached.
        output_dir: Directory receiving one <disaster number>.csv per group.
        max_cache_age_days: Cached files older than this are refetched.
        group_column_index: Zero-based position of the grouping column.
                            Positional on purpose: both OpenFEMA exports
                            keep a stable column order.
    """
    ihp_cache_path: Path = Path("IndividualsAndHouseholdsProgramValidRegistrations.csv")
    declarations_cache_path: Path = Path("FemaWebDisasterDeclarations.csv")
    output_dir: Path = Path("csvs")
    max_cache_age_days: int = DEFAULT_MAX_CACHE_AGE_DAYS
    group_column_index: int = DEFAULT_GROUP_COLUMN_INDEX

    def __post_init__(self):
        """Validate settings after initialization."""
        if self.max_cache_age_days < 1:
            raise ValueError(
                f"max_cache_age_days must be at least 1, got: {self.max_cache_age_days}"
            )
        if self.group_column_index < 0:
            raise ValueError(
                f"group_column_index must be non-negative, got: {self.group_column_index}"
            )

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        """
        Load pipeline settings from environment variables.

        **Environment variables** (all optional):
          - IHP_CACHE_PATH
          - DECLARATIONS_CACHE_PATH
          - OUTPUT_DIR (default ./csvs)
          - MAX_CACHE_AGE_DAYS (default 7)
          - GROUP_COLUMN_INDEX (default 2)

        Raises:
            ValueError: If a numeric variable cannot be parsed or is out of range.
        """
        defaults = cls()
        return cls(
            ihp_cache_path=Path(os.getenv("IHP_CACHE_PATH", str(defaults.ihp_cache_path))),
            declarations_cache_path=Path(
                os.getenv("DECLARATIONS_CACHE_PATH", str(defaults.declarations_cache_path))
            ),
            output_dir=Path(os.getenv("OUTPUT_DIR", str(defaults.output_dir))),
            max_cache_age_days=_int_from_env(
                "MAX_CACHE_AGE_DAYS", str(DEFAULT_MAX_CACHE_AGE_DAYS)
            ),
            group_column_index=_int_from_env(
                "GROUP_COLUMN_INDEX", str(DEFAULT_GROUP_COLUMN_INDEX)
            ),
        )


@dataclass(frozen=True)
class Settings:
    """
    Top-level settings aggregating download and pipeline configuration.

    **Usage pattern**:
      ```python
      from disaster_split.config.settings import get_settings

      settings = get_settings()
      settings.fema.ihp_url
      settings.pipeline.output_dir
      ```
    """
    fema: FemaSettings = field(default_factory=FemaSettings)
    pipeline: PipelineSettings = field(default_factory=PipelineSettings)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            fema=FemaSettings.from_env(),
            pipeline=PipelineSettings.from_env(),
        )


_default_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings singleton.

    Settings are loaded from the environment on first call, then cached.
    Tests bypass this by constructing Settings objects directly, or call
    reset_settings() after changing environment variables.

    Raises:
        ValueError: If any environment variable holds an invalid value.
    """
    global _default_settings

    if _default_settings is None:
        _default_settings = Settings.from_env()

    return _default_settings


def reset_settings():
    """Clear the cached settings singleton (for testing)."""
    global _default_settings
    _default_settings = None
