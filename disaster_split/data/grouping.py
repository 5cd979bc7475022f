"""
Partition records into groups keyed by a positional column.

**Conceptual**: A single pass over the input appends each record to the list
belonging to its key. Nothing is filtered, transformed, or deduplicated, and
the input does not need to be sorted. Records inside a group keep their
input order; that is the only ordering this module promises.

The key is taken by position (column index 2 for the IHP registrations file,
the disaster number), never by header name.
"""

from typing import Callable, Dict, Iterable, List, Optional

from disaster_split.data.schemas import Record


UNKNOWN_GROUP_KEY = "unknown"
DEFAULT_KEY_INDEX = 2

GroupTable = Dict[str, List[Record]]


def extract_group_key(record: Record, key_index: int = DEFAULT_KEY_INDEX) -> str:
    """
    Return the grouping key of `record`.

    Args:
        record: One data row.
        key_index: Zero-based column position of the key.

    Returns:
        The field verbatim, or "unknown" if the row is too short or the field
        is blank.

    Example:
        >>> extract_group_key(["1", "A", "4337", "50"])
        '4337'
        >>> extract_group_key(["1", "A"])
        'unknown'
    """
    if key_index >= len(record):
        return UNKNOWN_GROUP_KEY
    value = record[key_index]
    if not value.strip():
        return UNKNOWN_GROUP_KEY
    return value


def group_records(
    records: Iterable[Record],
    key_index: int = DEFAULT_KEY_INDEX,
    on_record: Optional[Callable[[int], None]] = None,
) -> GroupTable:
    """
    Build a GroupTable from `records`.

    Args:
        records: Data rows in input order (header excluded).
        key_index: Zero-based column position of the key.
        on_record: Optional callback invoked with the running record count
                   after each record (used for progress display).

    Returns:
        Mapping of key → records, each list in input order. Keys appear in
        first-seen order, but callers must not depend on that.
    """
    groups: GroupTable = {}
    count = 0
    for record in records:
        key = extract_group_key(record, key_index)
        bucket = groups.get(key)
        if bucket is None:
            bucket = groups[key] = []
        bucket.append(record)
        count += 1
        if on_record is not None:
            on_record(count)
    return groups


def total_records(groups: GroupTable) -> int:
    return sum(len(records) for records in groups.values())
