"""
Adapter trimming using cutadapt's adapter matching.

The cutadapt adapter classes are used in-process: one adapter object per
search pattern, matched against each read with `match_to`.

Author: Kevin R. Roy
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Protocol, Sequence
import logging

from cutadapt.adapters import BackAdapter, FrontAdapter, PrefixAdapter, SuffixAdapter

from ..core.models import Read
from ..errors import CollaboratorFailure
from ..utils.sequence import reverse_complement

logger = logging.getLogger(__name__)

# Standard adapter sequences
DAMID_ADAPTER_5 = "GGTCGCGGCCGAG"
ILLUMINA_ADAPTER_5 = "GCTCTTCCGATCT"

DAMID_ADAPTERS = [
    DAMID_ADAPTER_5,
    reverse_complement(DAMID_ADAPTER_5),  # CTCGGCCGCGACC
]

ILLUMINA_ADAPTERS = [
    ILLUMINA_ADAPTER_5,
    reverse_complement(ILLUMINA_ADAPTER_5),  # AGATCGGAAGAGC
]


class Anchor(Enum):
    """Read end a pattern is matched against."""
    START = 'start'
    END = 'end'


@dataclass(frozen=True)
class AdapterPattern:
    """
    A search pattern for the trimmer.

    Attributes:
        sequence: Pattern bases
        anchor: Read end the pattern belongs to
        anchored: If True the pattern must sit at the extreme read end
            (cutadapt '^ADAPTER' / 'ADAPTER$'); otherwise it may occur
            anywhere, including partial overlaps at that end
    """
    sequence: str
    anchor: Anchor
    anchored: bool = True

    def __str__(self) -> str:
        if self.anchor == Anchor.START:
            return f"^{self.sequence}" if self.anchored else f"-g {self.sequence}"
        return f"{self.sequence}$" if self.anchored else f"-a {self.sequence}"


@dataclass
class TrimResult:
    """Result from one trimming pass."""
    matched: List[Read] = field(default_factory=list)
    unmatched: List[Read] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.matched) + len(self.unmatched)


class Trimmer(Protocol):
    """Capability that finds (and optionally removes) adapter patterns."""

    def trim(
        self,
        reads: Iterable[Read],
        patterns: Sequence[AdapterPattern],
        min_overlap: int,
        error_rate: float,
        no_trim: bool = False,
        times: int = 1,
        read_wildcards: bool = False,
    ) -> TrimResult:
        ...


class CutadaptTrimmer:
    """Trimmer backed by cutadapt adapter classes."""

    def trim(
        self,
        reads: Iterable[Read],
        patterns: Sequence[AdapterPattern],
        min_overlap: int,
        error_rate: float,
        no_trim: bool = False,
        times: int = 1,
        read_wildcards: bool = False,
    ) -> TrimResult:
        """
        Search reads for adapter patterns.

        Args:
            reads: Reads to search
            patterns: Patterns to try; the best match wins each round
            min_overlap: Minimum overlap for unanchored patterns (anchored
                patterns always require their full length)
            error_rate: Allowed errors as a fraction of the overlap
            no_trim: Report matches without modifying the read
            times: Maximum number of trimming rounds per read
            read_wildcards: Treat N in reads as matching any base

        Returns:
            TrimResult with matched (trimmed unless no_trim) and unmatched reads

        Raises:
            CollaboratorFailure: If cutadapt rejects a pattern or fails to match
        """
        if not patterns:
            raise ValueError("At least one adapter pattern is required")

        try:
            adapters = [
                (pattern, _build_adapter(pattern, min_overlap, error_rate, read_wildcards))
                for pattern in patterns
            ]
            result = TrimResult()
            for read in reads:
                trimmed = _trim_read(read, adapters, no_trim, times)
                if trimmed is None:
                    result.unmatched.append(read)
                else:
                    result.matched.append(trimmed)
        except (ValueError, TypeError, AttributeError) as e:
            raise CollaboratorFailure('trim', f"cutadapt failed on {_describe(patterns)}: {e}") from e

        logger.debug(
            f"Trimmed {_describe(patterns)}: "
            f"{len(result.matched)}/{result.processed} reads matched"
        )
        return result


def _build_adapter(
    pattern: AdapterPattern,
    min_overlap: int,
    error_rate: float,
    read_wildcards: bool,
):
    """Create the cutadapt adapter object for a pattern."""
    if pattern.anchored:
        adapter_class = PrefixAdapter if pattern.anchor == Anchor.START else SuffixAdapter
        return adapter_class(
            pattern.sequence,
            max_errors=error_rate,
            read_wildcards=read_wildcards,
            name=str(pattern),
        )

    adapter_class = FrontAdapter if pattern.anchor == Anchor.START else BackAdapter
    return adapter_class(
        pattern.sequence,
        max_errors=error_rate,
        min_overlap=min(min_overlap, len(pattern.sequence)),
        read_wildcards=read_wildcards,
        name=str(pattern),
    )


def _trim_read(read: Read, adapters, no_trim: bool, times: int) -> Optional[Read]:
    """Return the trimmed read, or None if no pattern matched."""
    current = read
    matched = False

    for _ in range(times):
        best = None
        best_pattern = None
        for pattern, adapter in adapters:
            match = adapter.match_to(current.sequence)
            if match is None:
                continue
            if (best is None or match.score > best.score
                    or (match.score == best.score and match.errors < best.errors)):
                best = match
                best_pattern = pattern

        if best is None:
            break
        matched = True
        if no_trim:
            break

        if best_pattern.anchor == Anchor.START:
            current = current.trim_start(best.rstop)
        else:
            current = current.slice(0, best.rstart)

        if not current.sequence:
            break

    return current if matched else None


def _describe(patterns: Sequence[AdapterPattern]) -> str:
    return ' '.join(str(p) for p in patterns)


def coarse_adapter_patterns(
    adapters5: Sequence[str],
    adapters3: Sequence[str],
) -> List[AdapterPattern]:
    """Unanchored patterns for the initial adapter strip."""
    return (
        [AdapterPattern(seq, Anchor.START, anchored=False) for seq in adapters5]
        + [AdapterPattern(seq, Anchor.END, anchored=False) for seq in adapters3]
    )


def motif_presence_patterns(motif: str) -> List[AdapterPattern]:
    """Unanchored patterns that find the motif anywhere in a read."""
    return [
        AdapterPattern(motif, Anchor.START, anchored=False),
        AdapterPattern(motif, Anchor.END, anchored=False),
    ]
