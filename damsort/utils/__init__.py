"""
Utility modules for DAMSORT.

Author: Kevin R. Roy
"""

from .sequence import (
    has_internal_occurrence,
    is_dna_sequence,
    motif_positions,
    reverse_complement,
)

__all__ = [
    'reverse_complement',
    'is_dna_sequence',
    'motif_positions',
    'has_internal_occurrence',
]
