"""
Write one CSV per group, plus a pandas summary of what was written.

**Conceptual**: Given the shared header and a completed GroupTable, every
group becomes `<output_dir>/<key>.csv`: header first, then the group's
records in stored order. Each file is flushed and fsync'ed before the next
one is started. Any failure aborts the whole run; there is no skip-and-
continue mode.

**Filenames**: keys are used verbatim as filename stems. Keys that would
escape the output directory (path separators, "." or "..", NUL) are
rejected with GroupKeyError before any file is written.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

import pandas as pd
from tqdm import tqdm

from disaster_split.data.grouping import GroupTable
from disaster_split.data.io import write_csv_rows


SUMMARY_COLUMNS = ["group_key", "record_count", "path"]


class GroupKeyError(ValueError):
    """Raised when a group key cannot be used as a filename stem."""
    pass


@dataclass(frozen=True)
class GroupWriteResult:
    group_key: str
    record_count: int
    path: Path


def _is_unsafe_key(key: str) -> bool:
    if key in ("", ".", ".."):
        return True
    if "\x00" in key or "/" in key or "\\" in key:
        return True
    return os.sep in key or (os.altsep is not None and os.altsep in key)


def validate_group_keys(groups: GroupTable) -> None:
    """
    Reject keys that cannot be used verbatim as filename stems.

    Raises:
        GroupKeyError: Listing every offending key.
    """
    bad = [key for key in groups if _is_unsafe_key(key)]
    if bad:
        raise GroupKeyError(
            f"Cannot derive output filenames from group key(s) {bad!r}: "
            f"keys must not be empty, '.', '..', or contain path separators."
        )


def group_output_path(output_dir: Path | str, key: str) -> Path:
    return Path(output_dir) / f"{key}.csv"


def write_groups(
    header: Sequence[str],
    groups: GroupTable,
    output_dir: Path | str,
    show_progress: bool = True,
) -> List[GroupWriteResult]:
    """
    Write every group to its own CSV file.

    Args:
        header: Column names, written as the first row of every file.
        groups: Completed GroupTable.
        output_dir: Destination directory (created if absent).
        show_progress: Display a tqdm bar over groups.

    Returns:
        One GroupWriteResult per group, in write order.

    Raises:
        GroupKeyError: If any key is unusable as a filename.
        OSError: If the directory or any file cannot be created or written.
    """
    validate_group_keys(groups)

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    print(f"Created output directory: {output_dir}")

    results: List[GroupWriteResult] = []
    with tqdm(
        total=len(groups),
        unit="group",
        desc="Writing groups",
        disable=not show_progress,
    ) as pbar:
        for key, records in groups.items():
            tqdm.write(f"Writing disaster number {key} with {len(records)} records")
            path = group_output_path(output_dir, key)
            count = write_csv_rows(path, header, records)
            results.append(GroupWriteResult(group_key=key, record_count=count, path=path))
            pbar.update(1)

    return results


def summarize_groups(results: Sequence[GroupWriteResult]) -> pd.DataFrame:
    """
    Tabulate written groups, largest first.

    Ties are broken by key so the table is deterministic regardless of the
    order in which groups were written.

    Returns:
        DataFrame with columns group_key, record_count, path.
    """
    if not results:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)

    df = pd.DataFrame(
        {
            "group_key": [r.group_key for r in results],
            "record_count": [r.record_count for r in results],
            "path": [str(r.path) for r in results],
        }
    )
    return df.sort_values(
        ["record_count", "group_key"], ascending=[False, True]
    ).reset_index(drop=True)


def write_summary_csv(summary: pd.DataFrame, path: Path | str) -> Path:
    """Save a group summary DataFrame to CSV, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    summary.to_csv(path, index=False)
    return path
