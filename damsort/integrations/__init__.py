"""
External tool integrations for DAMSORT.

Author: Kevin R. Roy
"""

from .aligners import (
    AlignerManager,
    AlignerResult,
    Bowtie2Aligner,
    Bowtie2Stats,
    parse_bowtie2_stats,
)

__all__ = [
    'AlignerManager',
    'AlignerResult',
    'Bowtie2Aligner',
    'Bowtie2Stats',
    'parse_bowtie2_stats',
]
