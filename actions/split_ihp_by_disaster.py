#!/usr/bin/env python3
"""
Download the FEMA IHP registrations CSV and split it into one CSV per disaster.

**Usage**:
    python actions/split_ihp_by_disaster.py
    python actions/split_ihp_by_disaster.py --output-dir out/csvs --summary out/summary.csv
    python actions/split_ihp_by_disaster.py --cache-path data/ihp.csv --skip-declarations

**What this script does**:
  1. Load settings from environment (.env file optional, all values defaulted)
  2. Check the local caches (delete empty / "Access Denied" files, refetch
     anything older than the cache lifetime)
  3. Download the IHP registrations and disaster declarations CSVs if needed
  4. Count the IHP records, then group them by disaster number (column 3)
  5. Write csvs/<disaster number>.csv for every group, header row first
  6. Print the largest groups (and optionally save the full summary)

**Exit codes**:
  - 0: All group files written
  - 1: Configuration error (bad environment variable or argument)
  - 2: Fatal error (network, access denied, malformed CSV, filesystem)
  - 130: Interrupted

**Example output**:
    $ python actions/split_ihp_by_disaster.py --no-progress
    About to download files...
    Using cached file: IndividualsAndHouseholdsProgramValidRegistrations.csv
    ...
    Found 412 unique disaster numbers
    ...
    Process complete!
"""

import argparse
import dataclasses
import sys
from pathlib import Path

# Add project root to Python path so we can import the package without installing
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from disaster_split.config.settings import Settings, get_settings
from disaster_split.data.schemas import DatasetParseError, SchemaValidationError
from disaster_split.data.writer import GroupKeyError, write_summary_csv
from disaster_split.orchestration.partition_pipeline import run_partition
from disaster_split.venues.fema_client import (
    FemaAccessDeniedError,
    FemaClient,
    FemaClientError,
    FemaHTTPError,
)


SUMMARY_PREVIEW_ROWS = 10


def parse_args(argv=None):
    """
    Parse command line arguments.

    Every option defaults to the value from settings, so running the script
    with no arguments reproduces the standard run.

    Returns:
        Namespace with attributes: output_dir, cache_path,
        declarations_cache_path, skip_declarations, summary, no_progress.
    """
    parser = argparse.ArgumentParser(
        description="Split the FEMA IHP registrations dataset into one CSV per disaster number",
        epilog="""
Examples:
  # Standard run: cache next to the script's working directory, output in ./csvs
  python actions/split_ihp_by_disaster.py

  # Custom output directory plus a summary table of group sizes
  python actions/split_ihp_by_disaster.py --output-dir out/csvs --summary out/summary.csv

  # Cron-friendly: no progress bars
  python actions/split_ihp_by_disaster.py --no-progress
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Directory for per-disaster CSV files (default: OUTPUT_DIR or ./csvs)",
    )

    parser.add_argument(
        "--cache-path",
        type=str,
        default=None,
        help="Local cache file for the IHP registrations CSV (default: IHP_CACHE_PATH)",
    )

    parser.add_argument(
        "--declarations-cache-path",
        type=str,
        default=None,
        help="Local cache file for the disaster declarations CSV (default: DECLARATIONS_CACHE_PATH)",
    )

    parser.add_argument(
        "--skip-declarations",
        action="store_true",
        help="Do not download or refresh the disaster declarations CSV",
    )

    parser.add_argument(
        "--summary",
        type=str,
        default=None,
        help="Write a CSV of group_key, record_count, path to this file",
    )

    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable progress bars",
    )

    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args) -> Settings:
    """
    Return `settings` with any path options from the command line applied.

    Raises:
        ValueError: If the resulting settings are invalid.
    """
    overrides = {}
    if args.output_dir:
        overrides["output_dir"] = Path(args.output_dir)
    if args.cache_path:
        overrides["ihp_cache_path"] = Path(args.cache_path)
    if args.declarations_cache_path:
        overrides["declarations_cache_path"] = Path(args.declarations_cache_path)

    if not overrides:
        return settings
    return dataclasses.replace(
        settings, pipeline=dataclasses.replace(settings.pipeline, **overrides)
    )


def main(argv=None):
    """
    Main entry point for the script.

    **Error handling strategy**: there is no partial success. Any failure
    after settings are loaded is fatal and reported with its cause.
    """
    args = parse_args(argv)

    try:
        settings = apply_overrides(get_settings(), args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        with FemaClient(settings.fema, show_progress=not args.no_progress) as client:
            result = run_partition(
                settings,
                client,
                show_progress=not args.no_progress,
                fetch_declarations=not args.skip_declarations,
            )

        print("=" * 60)
        print(f"Wrote {result.group_count} file(s) with {result.record_count} record(s) "
              f"to {settings.pipeline.output_dir}")
        if result.group_count:
            print("Largest groups:")
            print(result.summary.head(SUMMARY_PREVIEW_ROWS).to_string(index=False))

        if args.summary:
            path = write_summary_csv(result.summary, args.summary)
            print(f"Summary saved to {path}")

    except KeyboardInterrupt:
        print("\nInterrupted by user. Exiting...")
        sys.exit(130)

    except FemaAccessDeniedError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("FEMA rejected the request; check FEMA_USER_AGENT / FEMA_REFERER.", file=sys.stderr)
        sys.exit(2)

    except FemaHTTPError as e:
        print(f"Error: download failed with HTTP {e.status_code}: {e}", file=sys.stderr)
        sys.exit(2)

    except FemaClientError as e:
        print(f"Error: download failed: {e}", file=sys.stderr)
        sys.exit(2)

    except (DatasetParseError, SchemaValidationError, GroupKeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    except OSError as e:
        print(f"Error: filesystem operation failed: {e}", file=sys.stderr)
        sys.exit(2)

    sys.exit(0)


if __name__ == "__main__":
    main()
