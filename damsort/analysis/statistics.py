"""
Stage counters and percentage bookkeeping for DAMSORT.

Every percentage is relative to the total input count of one file, which
is fixed by the first recorded stage. Arithmetic is exact (Fraction) and
rounding for display is explicit (half-up).

Author: Kevin R. Roy
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from fractions import Fraction
from typing import Dict, Optional, Union
import logging
import threading
import warnings

import pandas as pd

from ..errors import AccountingInvariantError, EmptyInputWarning

logger = logging.getLogger(__name__)

UNDEFINED = 'undefined'


def percentage_of(count: int, total: int) -> Optional[Fraction]:
    """
    Exact percentage of count relative to total.

    Returns None when total is zero (the percentage is undefined).

    Example:
        >>> percentage_of(250, 1000)
        Fraction(25, 1)
    """
    if total == 0:
        return None
    return Fraction(100 * count, total)


def format_percentage(value: Optional[Fraction], places: int = 2) -> str:
    """
    Format a percentage for display, rounding half-up.

    Example:
        >>> format_percentage(Fraction(100, 3))
        '33.33'
        >>> format_percentage(None)
        'undefined'
    """
    if value is None:
        return UNDEFINED
    exact = Decimal(value.numerator) / Decimal(value.denominator)
    quantum = Decimal(1).scaleb(-places)
    return str(exact.quantize(quantum, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class StageCount:
    """Count and percentage for one stage."""
    count: int
    percentage: Optional[Fraction]

    @property
    def display(self) -> str:
        pct = format_percentage(self.percentage)
        if self.percentage is None:
            return f"{self.count} ({pct})"
        return f"{self.count} ({pct}%)"


class StatsAggregator:
    """
    Named stage counters for one input file.

    Create one aggregator per file; sessions are never shared across files.
    Increments are serialized with a lock so two pools may record
    concurrently.
    """

    def __init__(self, source: str = ''):
        self.source = source
        self._counts: Dict[str, int] = {}
        self._total: Optional[int] = None
        self._lock = threading.RLock()
        self._empty_warned = False

    @property
    def total_input_count(self) -> Optional[int]:
        """Total fixed by the first record call (None before that)."""
        return self._total

    @property
    def is_empty(self) -> bool:
        return self._total == 0

    def record(self, stage: str, count: int) -> int:
        """
        Add count to a stage counter.

        The first call for the session fixes the total input count.

        Returns:
            The stage counter after the increment

        Raises:
            AccountingInvariantError: If count is negative
        """
        if count < 0:
            raise AccountingInvariantError(
                f"Negative count {count} recorded for stage '{stage}'{self._where()}"
            )
        with self._lock:
            if self._total is None:
                self._total = count
                if count == 0:
                    self._warn_empty()
            self._counts[stage] = self._counts.get(stage, 0) + count
            return self._counts[stage]

    def count(self, stage: str) -> int:
        with self._lock:
            return self._counts.get(stage, 0)

    def derive(self, stage: str, minuend: Union[int, str], *subtrahends: Union[int, str]) -> int:
        """
        Record stage = minuend - sum(subtrahends) using integer arithmetic.

        Operands may be integers or names of already-recorded stages.

        Raises:
            AccountingInvariantError: If the derived count would be negative
        """
        with self._lock:
            value = self._resolve(minuend) - sum(self._resolve(s) for s in subtrahends)
            if value < 0:
                raise AccountingInvariantError(
                    f"Derived count for stage '{stage}' would be negative ({value}){self._where()}"
                )
            self.record(stage, value)
            return value

    def percentage(self, stage: str) -> Optional[Fraction]:
        """Percentage of the stage relative to the total, or None if undefined."""
        with self._lock:
            if self._total is None:
                return None
            if self._total == 0:
                self._warn_empty()
                return None
            return percentage_of(self._counts.get(stage, 0), self._total)

    def snapshot(self) -> Dict[str, StageCount]:
        """All stages in recording order with counts and percentages."""
        with self._lock:
            return {
                stage: StageCount(count=count, percentage=self.percentage(stage))
                for stage, count in self._counts.items()
            }

    def to_frame(self) -> pd.DataFrame:
        """Snapshot as a DataFrame with stage, count and percentage columns."""
        rows = [
            {
                'stage': stage,
                'count': value.count,
                'percentage': format_percentage(value.percentage),
            }
            for stage, value in self.snapshot().items()
        ]
        return pd.DataFrame(rows, columns=['stage', 'count', 'percentage'])

    def _resolve(self, operand: Union[int, str]) -> int:
        if isinstance(operand, str):
            return self._counts.get(operand, 0)
        return operand

    def _warn_empty(self):
        if self._empty_warned:
            return
        self._empty_warned = True
        message = f"No reads in input{self._where()}; percentages are undefined"
        logger.warning(message)
        warnings.warn(message, EmptyInputWarning, stacklevel=3)

    def _where(self) -> str:
        return f" ({self.source})" if self.source else ''
