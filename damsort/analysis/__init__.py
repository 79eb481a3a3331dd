"""
Stage counting and percentage bookkeeping for DAMSORT.

Example usage:

    from damsort.analysis import StatsAggregator

    stats = StatsAggregator(source='sample.fastq.gz')
    stats.record('processed', 1000)
    stats.record('inner', 250)
    print(stats.snapshot()['inner'].display)  # 250 (25.00%)

Author: Kevin R. Roy
"""

from .statistics import (
    UNDEFINED,
    StageCount,
    StatsAggregator,
    format_percentage,
    percentage_of,
)

__all__ = [
    "StatsAggregator",
    "StageCount",
    "percentage_of",
    "format_percentage",
    "UNDEFINED",
]
