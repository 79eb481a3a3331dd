"""
Data models for DAMSORT read sorting.

Author: Kevin R. Roy
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional


# SAM flag bits
FLAG_UNMAPPED = 0x4
FLAG_SECONDARY = 0x100


class Provenance(Enum):
    """Pool a read was sorted into before the motif cascade."""
    LEN9 = 'len9'  # adapter removed, at least min_length bases
    ORIG_LEN = 'orig_len'  # no adapter found, original length


class ClassificationBucket(Enum):
    """Final category of a read after the motif cascade."""
    TRASH = 'trash'
    INNER_ORIGINAL_LENGTH = 'inner'
    EDGE_TRIMMED = 'edge'


class MultiplicityBucket(Enum):
    """Number of alignment locations reported for a read."""
    UNMAPPED = 'unmapped'
    UNIQUE = 'unique'
    DOUBLE = 'double'
    TRIPLE_OR_MORE = 'triple_or_more'


@dataclass(frozen=True)
class Read:
    """
    A single FASTQ read.

    Attributes:
        read_id: Header line without the leading '@'
        sequence: Read bases
        quality: Quality string, same length as sequence
        provenance: Pool the read belongs to (None before pool sorting)
    """
    read_id: str
    sequence: str
    quality: str
    provenance: Optional[Provenance] = None

    def __len__(self) -> int:
        return len(self.sequence)

    def with_provenance(self, provenance: Provenance) -> 'Read':
        return replace(self, provenance=provenance)

    def trim_start(self, n: int) -> 'Read':
        """Remove n bases (and qualities) from the 5' end."""
        return replace(self, sequence=self.sequence[n:], quality=self.quality[n:])

    def substitute_start(self, width: int, replacement: str) -> 'Read':
        """Replace the first `width` bases with `replacement`.

        Quality is shortened from the 5' end by the length difference.
        """
        removed = width - len(replacement)
        return replace(
            self,
            sequence=replacement + self.sequence[width:],
            quality=self.quality[removed:],
        )

    def substitute_end(self, width: int, replacement: str) -> 'Read':
        """Replace the last `width` bases with `replacement`.

        Quality is shortened from the 3' end by the length difference.
        """
        removed = width - len(replacement)
        return replace(
            self,
            sequence=self.sequence[:len(self.sequence) - width] + replacement,
            quality=self.quality[:len(self.quality) - removed],
        )

    def slice(self, start: int, stop: int) -> 'Read':
        return replace(self, sequence=self.sequence[start:stop], quality=self.quality[start:stop])

    def to_fastq(self) -> str:
        return f"@{self.read_id}\n{self.sequence}\n+\n{self.quality}\n"


@dataclass(frozen=True)
class AlignmentRecord:
    """
    One alignment line for a read.

    Attributes:
        read_id: Query name
        flag: SAM bitwise flag
        mapq: Mapping quality, if known
        sequence: Read bases as stored in the alignment, if known
        payload: Underlying pysam.AlignedSegment or raw SAM line, if any
    """
    read_id: str
    flag: int
    mapq: Optional[int] = field(default=None, compare=False)
    sequence: Optional[str] = field(default=None, compare=False, repr=False)
    payload: Any = field(default=None, compare=False, repr=False)

    @property
    def is_secondary(self) -> bool:
        return bool(self.flag & FLAG_SECONDARY)

    @property
    def is_unmapped(self) -> bool:
        return bool(self.flag & FLAG_UNMAPPED)
