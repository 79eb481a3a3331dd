"""
Alignment record I/O (SAM/BAM via pysam, plus plain SAM text lines).

Author: Kevin R. Roy
"""

from collections import Counter
from pathlib import Path
from typing import Dict, Iterable, Iterator, Union
import gzip
import logging

import pysam

from ..core.models import AlignmentRecord, MultiplicityBucket
from ..core.multiplicity import MultiplicityPartition
from ..errors import MalformedRecordError
from .fastq import atomic_output

logger = logging.getLogger(__name__)

# Output file suffix per multiplicity bucket
PARTITION_SUFFIXES = {
    MultiplicityBucket.UNIQUE: '',
    MultiplicityBucket.DOUBLE: '_2x',
    MultiplicityBucket.TRIPLE_OR_MORE: '_3x',
}


def _record_from_segment(segment: pysam.AlignedSegment) -> AlignmentRecord:
    return AlignmentRecord(
        read_id=segment.query_name,
        flag=segment.flag,
        mapq=segment.mapping_quality,
        sequence=segment.query_sequence,
        payload=segment,
    )


def read_alignment_records(path: Union[str, Path]) -> Iterator[AlignmentRecord]:
    """
    Iterate over SAM/BAM records in file order.

    The file does not need to be sorted or indexed.

    Raises:
        MalformedRecordError: If pysam cannot parse the file
    """
    path = str(path)
    mode = 'rb' if path.endswith('.bam') else 'r'
    try:
        with pysam.AlignmentFile(path, mode, check_sq=False) as alignments:
            for segment in alignments.fetch(until_eof=True):
                yield _record_from_segment(segment)
    except (ValueError, OSError) as e:
        raise MalformedRecordError(f"Cannot read alignments: {e}", path) from e


def parse_sam_line(line: str, line_no: int = None) -> AlignmentRecord:
    """
    Parse one SAM text line (QNAME, FLAG, ... tab separated).

    MAPQ (column 5) and SEQ (column 10) are picked up when present.

    Raises:
        MalformedRecordError: If the line has fewer than two fields or the
            flag is not an integer
    """
    fields = line.rstrip('\r\n').split('\t')
    if len(fields) < 2 or not fields[0]:
        raise MalformedRecordError(f"Expected read id and flag, got {line.strip()[:40]!r}", line=line_no)
    try:
        flag = int(fields[1])
    except ValueError as e:
        raise MalformedRecordError(
            f"Flag is not an integer for read '{fields[0]}': {fields[1]!r}", line=line_no
        ) from e

    mapq = None
    if len(fields) > 4 and fields[4].isdigit():
        mapq = int(fields[4])
    sequence = fields[9] if len(fields) > 9 and fields[9] != '*' else None

    return AlignmentRecord(
        read_id=fields[0],
        flag=flag,
        mapq=mapq,
        sequence=sequence,
        payload=line.rstrip('\r\n'),
    )


def iter_sam_lines(lines: Iterable[str]) -> Iterator[AlignmentRecord]:
    """Parse SAM text lines, skipping header ('@') and blank lines."""
    for line_no, line in enumerate(lines, start=1):
        if not line.strip() or line.startswith('@'):
            continue
        yield parse_sam_line(line, line_no)


def count_passing_mapq(records: Iterable[AlignmentRecord], min_mapq: int = 25) -> int:
    """Number of mapped records with mapping quality >= min_mapq."""
    return sum(
        1 for r in records
        if not r.is_unmapped and r.mapq is not None and r.mapq >= min_mapq
    )


def sam_text_header(lines: Iterable[str]) -> pysam.AlignmentHeader:
    """Alignment header built from the '@' lines of SAM text."""
    text = ''.join(
        line if line.endswith('\n') else line + '\n'
        for line in lines if line.startswith('@')
    )
    return pysam.AlignmentHeader.from_text(text)


def _segment(record: AlignmentRecord, header: pysam.AlignmentHeader) -> pysam.AlignedSegment:
    if isinstance(record.payload, pysam.AlignedSegment):
        return record.payload
    if isinstance(record.payload, str):
        return pysam.AlignedSegment.fromstring(record.payload, header)
    raise ValueError(f"Record '{record.read_id}' has no alignment segment to write")


def write_partition_bams(
    partition: MultiplicityPartition,
    template: Union[pysam.AlignmentFile, pysam.AlignmentHeader],
    prefix: Union[str, Path],
    min_mapq: int = 0,
) -> Dict[MultiplicityBucket, Path]:
    """
    Write unique, doubly and triply-or-more mapped records as BAM files.

    Files are '<prefix>.bam', '<prefix>_2x.bam' and '<prefix>_3x.bam'.
    Unique records below min_mapq are left out of the unique file. If any
    file fails, the ones already written are removed again.

    Args:
        partition: Multiplicity partition with pysam segments or SAM text payloads
        template: Open alignment file (or its header) providing the header
        prefix: Output path without extension
        min_mapq: Mapping quality filter for unique records

    Returns:
        Dict mapping bucket to written path
    """
    header = template.header if isinstance(template, pysam.AlignmentFile) else template
    prefix = str(prefix)
    paths = {}

    try:
        for bucket, suffix in PARTITION_SUFFIXES.items():
            records = partition.bucket(bucket)
            if bucket == MultiplicityBucket.UNIQUE and min_mapq > 0:
                records = [r for r in records if (r.mapq or 0) >= min_mapq]

            path = Path(f"{prefix}{suffix}.bam")
            with atomic_output(path) as tmp:
                with pysam.AlignmentFile(str(tmp), 'wb', header=header) as out:
                    for record in records:
                        out.write(_segment(record, header))
            paths[bucket] = path
            logger.debug(f"Wrote {len(records)} {bucket.value} records to {path}")
    except Exception:
        for path in paths.values():
            path.unlink(missing_ok=True)
        raise

    return paths


def write_unmapped_counts(records: Iterable[AlignmentRecord], path: Union[str, Path]) -> int:
    """
    Write a gzipped abundance table of unmapped read sequences.

    Lines are 'count<TAB>sequence', most abundant first (ties by sequence).

    Returns:
        Number of distinct sequences written
    """
    counts = Counter(r.sequence for r in records if r.sequence)
    ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))

    with atomic_output(path) as tmp:
        with gzip.open(tmp, 'wt') as f:
            for sequence, count in ordered:
                f.write(f"{count}\t{sequence}\n")

    logger.info(f"Wrote {len(ordered)} distinct unmapped sequences to {path}")
    return len(ordered)
