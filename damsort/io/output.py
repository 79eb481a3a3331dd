"""
Output generation for DAMSORT results.

Reporters receive stage statistics; table writers produce the per-file
stats table, the per-offset table and the legacy summary CSV.

Author: Kevin R. Roy
"""

from fractions import Fraction
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Union, runtime_checkable
import logging

import pandas as pd

from ..analysis.statistics import StageCount, StatsAggregator, format_percentage, percentage_of
from ..core.cascade import CascadeResult
from .fastq import atomic_output

logger = logging.getLogger(__name__)

# Column order of cutadapt_statistics.csv
LEGACY_HEADER = [
    'Data.set',
    'fastq.file',
    'Total.number.of.reads.obtained',
    'Without.GATCs.original.length',
    'With.edge.GATCs',
    'Cutadapt.Trash',
    'Sum',
    'Sum-Total.number.of.reads.obtained',
    'Without.GATCs.original.length.Percentage',
    'With.edge.GATCs.Percentage',
    'Cutadapt.Trash.Percentage',
]


@runtime_checkable
class StageReporter(Protocol):
    """Sink for stage statistics."""

    def publish(self, stage: str, count: int, percentage: Optional[Fraction]):
        ...


@runtime_checkable
class RowReporter(Protocol):
    """Sink for per-file summary rows."""

    def publish_row(self, fields: Dict[str, Any]):
        ...


@runtime_checkable
class Reporter(StageReporter, RowReporter, Protocol):
    """Sink for both stage statistics and summary rows."""


AnyReporter = Union[StageReporter, RowReporter]


class LoggingReporter:
    """Publish statistics as log lines."""

    def __init__(self, name: str = __name__, level: int = logging.INFO):
        self.log = logging.getLogger(name)
        self.level = level

    def publish(self, stage: str, count: int, percentage: Optional[Fraction]):
        self.log.log(self.level, f"{stage}: {StageCount(count, percentage).display}")

    def publish_row(self, fields: Dict[str, Any]):
        self.log.log(self.level, '; '.join(f"{k}={v}" for k, v in fields.items()))


class CsvReporter:
    """
    Append summary rows to a ';'-separated CSV file.

    The header is written when the file is created. This is a row sink
    only; stage counts go to the per-file stats table.
    """

    def __init__(self, path: Path, columns: List[str] = None):
        self.path = Path(path)
        self.columns = columns or LEGACY_HEADER

    def publish_row(self, fields: Dict[str, Any]):
        missing = [c for c in self.columns if c not in fields]
        if missing:
            raise ValueError(f"Row for {self.path} is missing columns: {', '.join(missing)}")

        self.path.parent.mkdir(parents=True, exist_ok=True)
        write_header = not self.path.exists() or self.path.stat().st_size == 0
        df = pd.DataFrame([fields], columns=self.columns)
        df.to_csv(self.path, sep=';', index=False, mode='a', header=write_header)
        logger.debug(f"Appended summary row to {self.path}")


def publish_snapshot(stats: StatsAggregator, reporters: Iterable[AnyReporter]):
    """Publish every recorded stage to each reporter that takes stage lines."""
    snapshot = stats.snapshot()
    for reporter in reporters:
        if not isinstance(reporter, StageReporter):
            continue
        for stage, value in snapshot.items():
            reporter.publish(stage, value.count, value.percentage)


def publish_summary(row: Dict[str, Any], reporters: Iterable[AnyReporter]):
    """Publish a summary row to each reporter that takes rows."""
    for reporter in reporters:
        if isinstance(reporter, RowReporter):
            reporter.publish_row(row)


def summary_row(data_set: str, fastq_file: str, result: CascadeResult) -> Dict[str, Any]:
    """
    Legacy summary row for one file.

    Args:
        data_set: Human-readable sample name
        fastq_file: FASTQ file name
        result: Cascade result for the file
    """
    total = result.total_reads
    inner = len(result.inner)
    edge = len(result.edge)
    trash = result.trash_count
    bucket_sum = inner + edge + trash

    return {
        'Data.set': data_set,
        'fastq.file': fastq_file,
        'Total.number.of.reads.obtained': total,
        'Without.GATCs.original.length': inner,
        'With.edge.GATCs': edge,
        'Cutadapt.Trash': trash,
        'Sum': bucket_sum,
        'Sum-Total.number.of.reads.obtained': total - bucket_sum,
        'Without.GATCs.original.length.Percentage': format_percentage(percentage_of(inner, total)),
        'With.edge.GATCs.Percentage': format_percentage(percentage_of(edge, total)),
        'Cutadapt.Trash.Percentage': format_percentage(percentage_of(trash, total)),
    }


def offset_rows(result: CascadeResult) -> List[Dict[str, Any]]:
    """One row per pool and offset, percentages relative to the file total."""
    total = result.total_reads
    rows = []
    for offset in result.offset_stats:
        rows.append({
            'pool': offset.pool.value,
            'offset': offset.offset,
            'window': offset.label,
            'input': offset.input_count,
            'input_pct': format_percentage(percentage_of(offset.input_count, total)),
            'matched': offset.matched,
            'matched_pct': format_percentage(percentage_of(offset.matched, total)),
        })
    return rows


def write_stats_table(stats: StatsAggregator, output_path: Path) -> Path:
    """
    Write the stage counters of one file to TSV.

    Returns:
        Path to written file
    """
    with atomic_output(output_path) as tmp:
        stats.to_frame().to_csv(tmp, sep='\t', index=False)

    logger.info(f"Wrote stage statistics to {output_path}")
    return Path(output_path)


def write_offset_table(result: CascadeResult, output_path: Path) -> Path:
    """
    Write per-offset cascade counts to TSV.

    Returns:
        Path to written file
    """
    columns = ['pool', 'offset', 'window', 'input', 'input_pct', 'matched', 'matched_pct']
    df = pd.DataFrame(offset_rows(result), columns=columns)
    with atomic_output(output_path) as tmp:
        df.to_csv(tmp, sep='\t', index=False)

    logger.info(f"Wrote per-offset statistics to {output_path}")
    return Path(output_path)
