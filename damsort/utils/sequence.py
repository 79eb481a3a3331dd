"""
DNA sequence helpers shared by the cascade and configuration.

Author: Kevin R. Roy
"""

import re
from typing import List


DNA_PATTERN = re.compile(r'^[ACGTNacgtn]+$')

_COMPLEMENT = str.maketrans('ACGTNacgtn', 'TGCANtgcan')


def reverse_complement(seq: str) -> str:
    """Return reverse complement of DNA sequence (case preserved)."""
    return seq.translate(_COMPLEMENT)[::-1]


def is_dna_sequence(s: str) -> bool:
    """Check if string is a non-empty DNA sequence over ACGTN."""
    return bool(s) and bool(DNA_PATTERN.match(s))


def motif_positions(sequence: str, motif: str) -> List[int]:
    """0-based start positions of every occurrence of motif, overlaps included.

    Matching ignores case.
    """
    pattern = re.compile(f'(?=({re.escape(motif)}))', re.IGNORECASE)
    return [m.start() for m in pattern.finditer(sequence)]


def has_internal_occurrence(sequence: str, motif: str) -> bool:
    """Check whether motif occurs with at least one base on both sides.

    Occurrences touching either end of the sequence are edge occurrences
    and do not count.

    Examples:
        >>> has_internal_occurrence("GATCAAAA", "GATC")
        False
        >>> has_internal_occurrence("AGATCA", "GATC")
        True
    """
    last_start = len(sequence) - len(motif)
    return any(0 < pos < last_start for pos in motif_positions(sequence, motif))
