"""
Record and header contracts for source CSVs.

**Conceptual**: Source rows are carried through the pipeline as plain lists
of strings; nothing is typed or coerced. The only structural requirement is
that the header declares the grouping column, i.e. has more than
`key_index` columns. Individual data rows may be shorter or longer than the
header (OpenFEMA exports occasionally are); short rows are grouped under the
"unknown" key instead of being rejected.
"""

from typing import List, Sequence


Record = List[str]
Header = List[str]


class SchemaValidationError(Exception):
    """
    Raised when a dataset header does not contain the grouping column.

    Carries the context (file path) in its message so the user can see which
    download is wrong.
    """
    pass


class DatasetParseError(Exception):
    """
    Raised when a source CSV cannot be parsed.

    Covers malformed quoting, bytes that are not valid UTF-8, and a file with
    no header row. Parsing is all-or-nothing: no row is skipped.
    """
    pass


def validate_header(
    header: Sequence[str],
    key_index: int,
    context: str | None = None,
) -> None:
    """
    Check that a header row declares the positional grouping column.

    Args:
        header: Column names as read from the first row.
        key_index: Zero-based index of the grouping column.
        context: Optional source description included in the error message.

    Raises:
        SchemaValidationError: If the header has `key_index` columns or fewer.
    """
    ctx = f"{context}: " if context else ""
    if len(header) <= key_index:
        raise SchemaValidationError(
            f"{ctx}Header has {len(header)} column(s) but grouping uses "
            f"column index {key_index}. Found columns: {list(header)}."
        )
