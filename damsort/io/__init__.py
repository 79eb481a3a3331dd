"""
I/O modules for DAMSORT.

Author: Kevin R. Roy
"""

from .alignments import (
    count_passing_mapq,
    iter_sam_lines,
    parse_sam_line,
    read_alignment_records,
    sam_text_header,
    write_partition_bams,
    write_unmapped_counts,
)
from .fastq import (
    atomic_output,
    read_fastq,
    write_fastq,
)
from .output import (
    LEGACY_HEADER,
    CsvReporter,
    LoggingReporter,
    AnyReporter,
    Reporter,
    RowReporter,
    StageReporter,
    offset_rows,
    publish_snapshot,
    publish_summary,
    summary_row,
    write_offset_table,
    write_stats_table,
)
from .sample_key import (
    Sample,
    create_sample_key_template,
    load_sample_key,
)

__all__ = [
    # FASTQ
    'read_fastq',
    'write_fastq',
    'atomic_output',
    # Alignments
    'read_alignment_records',
    'sam_text_header',
    'parse_sam_line',
    'iter_sam_lines',
    'write_partition_bams',
    'write_unmapped_counts',
    'count_passing_mapq',
    # Samples
    'Sample',
    'load_sample_key',
    'create_sample_key_template',
    # Reporting
    'Reporter',
    'StageReporter',
    'RowReporter',
    'AnyReporter',
    'LoggingReporter',
    'CsvReporter',
    'LEGACY_HEADER',
    'publish_snapshot',
    'publish_summary',
    'summary_row',
    'offset_rows',
    'write_stats_table',
    'write_offset_table',
]
