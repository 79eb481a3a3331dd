"""
Preprocessing modules for adapter trimming.

Author: Kevin R. Roy
"""

from .trimming import (
    DAMID_ADAPTER_5,
    DAMID_ADAPTERS,
    ILLUMINA_ADAPTER_5,
    ILLUMINA_ADAPTERS,
    AdapterPattern,
    Anchor,
    CutadaptTrimmer,
    Trimmer,
    TrimResult,
    coarse_adapter_patterns,
    motif_presence_patterns,
)

__all__ = [
    # Adapters
    'DAMID_ADAPTER_5',
    'ILLUMINA_ADAPTER_5',
    'DAMID_ADAPTERS',
    'ILLUMINA_ADAPTERS',
    # Trimming
    'Anchor',
    'AdapterPattern',
    'Trimmer',
    'TrimResult',
    'CutadaptTrimmer',
    'coarse_adapter_patterns',
    'motif_presence_patterns',
]
