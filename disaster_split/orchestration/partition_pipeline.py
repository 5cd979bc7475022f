"""
End-to-end run: validate cache → fetch if needed → count → group → write.

**Conceptual**: This module wires the building blocks together in a strictly
sequential order. Nothing runs concurrently; each stage finishes before the
next one starts, and any exception aborts the run.

**Why two passes over the source file?** The first pass only counts records
so the grouping progress bar has a total. The second pass does the real
work. Only the first pass goes through load_dataset(); the second opens a
fresh DatasetReader on the same cache file without re-checking its age, so a
file that turns stale mid-run is not swapped out between the passes. The
grouped output is identical to what a single buffered pass would produce.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

import pandas as pd
from tqdm import tqdm

from disaster_split.config.settings import Settings
from disaster_split.data.grouping import group_records, total_records
from disaster_split.data.io import DatasetReader, count_records
from disaster_split.data.loaders import Downloader, ensure_cached, load_dataset
from disaster_split.data.schemas import Header, validate_header
from disaster_split.data.writer import GroupWriteResult, summarize_groups, write_groups
from disaster_split.utils.time import Clock


@dataclass
class PartitionResult:
    """
    What a run produced.

    Attributes:
        header: Header row shared by every output file.
        record_count: Data records read from the source.
        results: One entry per written group file.
        summary: DataFrame view of `results`, largest group first.
    """
    header: Header
    record_count: int
    results: List[GroupWriteResult]
    summary: pd.DataFrame

    @property
    def group_count(self) -> int:
        return len(self.results)


def run_partition(
    settings: Settings,
    client: Downloader,
    clock: Optional[Clock] = None,
    show_progress: bool = True,
    fetch_declarations: bool = True,
) -> PartitionResult:
    """
    Download (or reuse) the IHP dataset and split it into per-disaster CSVs.

    Args:
        settings: URLs, cache paths, output directory, cache lifetime,
                  grouping column.
        client: Downloader used for cache misses.
        clock: Time source for cache age checks (real clock if omitted).
        show_progress: Display tqdm progress bars.
        fetch_declarations: Also refresh the disaster declarations cache.

    Returns:
        PartitionResult describing the written files.

    Raises:
        FemaClientError: Download failed or was denied.
        DatasetParseError: Source CSV is malformed.
        SchemaValidationError: Header lacks the grouping column.
        GroupKeyError: A key cannot be used as a filename.
        OSError: Any filesystem failure.
    """
    fema = settings.fema
    pipeline = settings.pipeline
    max_age = timedelta(days=pipeline.max_cache_age_days)
    key_index = pipeline.group_column_index

    print("About to download files...")
    with load_dataset(
        fema.ihp_url, pipeline.ihp_cache_path, client, max_age=max_age, clock=clock
    ) as reader:
        if fetch_declarations:
            ensure_cached(
                fema.declarations_url,
                pipeline.declarations_cache_path,
                client,
                max_age=max_age,
                clock=clock,
            )

        print("Starting to process IHP data...")
        header = list(reader.header)
        # A header too short for the key column means the wrong file or a
        # changed layout; grouping every row under "unknown" would hide that.
        validate_header(header, key_index, context=str(pipeline.ihp_cache_path))
        print("Headers loaded successfully")

        print("Counting total records...")
        total = count_records(reader)
    print(f"Total records to process: {total}")

    with DatasetReader(pipeline.ihp_cache_path) as reader:
        print("Reading and grouping records...")
        with tqdm(
            total=total,
            unit="record",
            desc="Grouping",
            disable=not show_progress,
        ) as pbar:
            groups = group_records(
                reader.records(),
                key_index=key_index,
                on_record=lambda _: pbar.update(1),
            )

    record_count = total_records(groups)
    print(f"\nTotal records processed: {record_count}")
    print(f"Found {len(groups)} unique disaster numbers")

    results = write_groups(header, groups, pipeline.output_dir, show_progress=show_progress)
    summary = summarize_groups(results)

    print("Process complete!")
    return PartitionResult(
        header=header,
        record_count=record_count,
        results=results,
        summary=summary,
    )
