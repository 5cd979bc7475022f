"""
CSV readers and writers for source datasets and per-group output files.

**Conceptual**: This module is the only place that calls the csv module.
Source files are read as raw string records (no type inference, no NA
handling) so that every field is written back out byte-for-byte as it was
parsed. pandas is not used for the rows themselves because OpenFEMA rows are
not guaranteed to be rectangular and a DataFrame would pad short rows.

**Dialect**: comma-delimited, double-quote quoting, minimal quoting on
output, "\n" line terminator, UTF-8 (a leading BOM on input is ignored).

**Rule**: Parsing is strict. A malformed row raises DatasetParseError with
the file and line number; it is never skipped.
"""

import csv
import os
from pathlib import Path
from typing import IO, Iterable, Iterator, Optional, Sequence

from disaster_split.data.schemas import DatasetParseError, Header, Record


SOURCE_ENCODING = "utf-8-sig"
OUTPUT_ENCODING = "utf-8"
OUTPUT_LINE_TERMINATOR = "\n"


class DatasetReader:
    """
    Row-oriented reader over a CSV file, positioned before the header row.

    **Usage**:
        >>> with DatasetReader("IndividualsAndHouseholdsProgramValidRegistrations.csv") as reader:
        ...     header = reader.header
        ...     for record in reader:
        ...         ...

    Each instance owns its own file handle, so opening the same path twice
    gives two independent readers that both start at the top of the file.
    Blank lines are skipped.
    """

    def __init__(self, path: Path | str, encoding: str = SOURCE_ENCODING):
        """
        Open `path` for reading.

        Raises:
            OSError: If the file cannot be opened.
        """
        self.path = Path(path)
        self._fh: Optional[IO[str]] = open(self.path, newline="", encoding=encoding)
        self._reader = csv.reader(self._fh, strict=True)
        self._header: Optional[Header] = None

    @property
    def header(self) -> Header:
        """
        The first row of the file (read on first access).

        Raises:
            DatasetParseError: If the file has no rows or the header is malformed.
        """
        if self._header is None:
            row = self._next_row()
            if row is None:
                raise DatasetParseError(f"{self.path}: file has no header row")
            self._header = row
        return self._header

    def _next_row(self) -> Optional[Record]:
        while True:
            try:
                row = next(self._reader)
            except StopIteration:
                return None
            except csv.Error as e:
                raise DatasetParseError(
                    f"{self.path}, line {self._reader.line_num}: malformed CSV: {e}"
                ) from e
            except UnicodeDecodeError as e:
                raise DatasetParseError(
                    f"{self.path}, after line {self._reader.line_num}: "
                    f"invalid UTF-8 data: {e}"
                ) from e
            if row:
                return row

    def records(self) -> Iterator[Record]:
        """
        Yield data records (header excluded) in file order.

        Raises:
            DatasetParseError: On the first malformed row.
        """
        self.header  # consume the header row if nobody has yet
        while True:
            row = self._next_row()
            if row is None:
                return
            yield row

    def __iter__(self) -> Iterator[Record]:
        return self.records()

    def close(self):
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def count_records(reader: DatasetReader) -> int:
    """Consume `reader` and return the number of data records."""
    return sum(1 for _ in reader.records())


def write_csv_rows(
    path: Path | str,
    header: Sequence[str],
    rows: Iterable[Sequence[str]],
) -> int:
    """
    Create or truncate `path` and write `header` followed by `rows`.

    The file is flushed and fsync'ed before returning so that the data is on
    stable storage when the caller moves on.

    Args:
        path: Output file.
        header: First row.
        rows: Data rows, written in iteration order.

    Returns:
        Number of data rows written (header excluded).

    Raises:
        OSError: If the file cannot be created, written, or synced.
    """
    written = 0
    with open(path, "w", newline="", encoding=OUTPUT_ENCODING) as fh:
        writer = csv.writer(fh, lineterminator=OUTPUT_LINE_TERMINATOR)
        writer.writerow(header)
        for row in rows:
            writer.writerow(row)
            written += 1
        fh.flush()
        os.fsync(fh.fileno())
    return written
