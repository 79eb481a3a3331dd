"""
Alignment multiplicity classification.

Splits an alignment stream into unmapped, uniquely mapped, doubly mapped
and triply-or-more mapped reads. All records of one read must be
contiguous, primary record first (aligner output order, e.g. bowtie2 -k).

Author: Kevin R. Roy
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional
import logging

from ..errors import MalformedRecordError
from .models import AlignmentRecord, MultiplicityBucket

logger = logging.getLogger(__name__)


@dataclass
class MultiplicityPartition:
    """Records split by multiplicity bucket, input order kept within a bucket."""
    unmapped: List[AlignmentRecord] = field(default_factory=list)
    unique: List[AlignmentRecord] = field(default_factory=list)
    double: List[AlignmentRecord] = field(default_factory=list)
    triple_or_more: List[AlignmentRecord] = field(default_factory=list)

    def bucket(self, bucket: MultiplicityBucket) -> List[AlignmentRecord]:
        return {
            MultiplicityBucket.UNMAPPED: self.unmapped,
            MultiplicityBucket.UNIQUE: self.unique,
            MultiplicityBucket.DOUBLE: self.double,
            MultiplicityBucket.TRIPLE_OR_MORE: self.triple_or_more,
        }[bucket]

    def read_ids(self, bucket: MultiplicityBucket) -> List[str]:
        """Distinct read ids in a bucket, in first-seen order."""
        return list(dict.fromkeys(r.read_id for r in self.bucket(bucket)))

    @property
    def total_records(self) -> int:
        return sum(len(self.bucket(b)) for b in MultiplicityBucket)

    def read_counts(self) -> Dict[MultiplicityBucket, int]:
        """Number of distinct reads per bucket."""
        return {b: len(self.read_ids(b)) for b in MultiplicityBucket}


class _GroupAccumulator:
    """Records of the read currently being collected."""

    def __init__(self, partition: MultiplicityPartition):
        self.partition = partition
        self.records: List[AlignmentRecord] = []
        self.primary_unmapped = False

    @property
    def is_open(self) -> bool:
        return bool(self.records)

    def start(self, record: AlignmentRecord):
        self.flush()
        self.records = [record]
        self.primary_unmapped = record.is_unmapped

    def add(self, record: AlignmentRecord):
        self.records.append(record)

    def flush(self) -> Optional[MultiplicityBucket]:
        """Emit the collected group to its bucket and reset."""
        if not self.records:
            return None

        size = len(self.records)
        if size == 1:
            bucket = MultiplicityBucket.UNMAPPED if self.primary_unmapped else MultiplicityBucket.UNIQUE
        elif size == 2:
            bucket = MultiplicityBucket.DOUBLE
        else:
            bucket = MultiplicityBucket.TRIPLE_OR_MORE

        self.partition.bucket(bucket).extend(self.records)
        self.records = []
        self.primary_unmapped = False
        return bucket


class MultiplicityClassifier:
    """
    Group contiguous alignment records by read and bucket by record count.

    The classifier only partitions records; counting reads per bucket is
    left to the caller.
    """

    def classify(self, records: Iterable[AlignmentRecord]) -> MultiplicityPartition:
        """
        Partition an ordered alignment stream.

        Args:
            records: Alignment records with each read's records contiguous

        Returns:
            MultiplicityPartition

        Raises:
            MalformedRecordError: If a secondary record arrives with no
                primary record before it
        """
        partition = MultiplicityPartition()
        group = _GroupAccumulator(partition)
        n_records = 0

        for record in records:
            n_records += 1
            if not record.is_secondary:
                group.start(record)
            elif group.is_open:
                group.add(record)
            else:
                raise MalformedRecordError(
                    f"Secondary alignment for '{record.read_id}' without a primary record "
                    f"(record {n_records})"
                )

        group.flush()

        logger.info(
            f"Split {n_records} alignment records: "
            + ', '.join(f"{b.value}={n}" for b, n in partition.read_counts().items())
        )
        return partition
