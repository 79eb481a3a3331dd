"""Tests for damsort.analysis.statistics."""

from fractions import Fraction

import pytest

from damsort.analysis.statistics import (
    UNDEFINED,
    StatsAggregator,
    format_percentage,
    percentage_of,
)
from damsort.errors import AccountingInvariantError, EmptyInputWarning


class TestPercentages:
    """Test exact percentage arithmetic and display rounding."""

    def test_quarter(self):
        """250 of 1000 is 25.00."""
        assert format_percentage(percentage_of(250, 1000)) == "25.00"

    def test_zero_total_is_undefined(self):
        """Percentages of an empty file are undefined."""
        assert percentage_of(5, 0) is None
        assert format_percentage(None) == UNDEFINED

    def test_exact_fraction(self):
        assert percentage_of(1, 3) == Fraction(100, 3)

    def test_rounding_half_up(self):
        """Halves round up, not to even."""
        assert format_percentage(Fraction(125, 1000)) == "0.13"
        assert format_percentage(Fraction(2, 3)) == "0.67"
        assert format_percentage(Fraction(100, 3)) == "33.33"

    def test_places(self):
        assert format_percentage(Fraction(1, 8), places=3) == "0.125"


class TestStatsAggregator:
    """Test the per-file stage counters."""

    def test_first_record_fixes_total(self):
        """The first recorded stage sets the total."""
        stats = StatsAggregator()
        stats.record('processed', 1000)
        stats.record('inner', 250)

        assert stats.total_input_count == 1000
        assert stats.percentage('inner') == 25
        assert stats.snapshot()['inner'].display == "250 (25.00%)"

    def test_record_is_additive(self):
        """Recording the same stage twice adds the counts."""
        stats = StatsAggregator()
        stats.record('processed', 10)
        stats.record('edge', 2)
        assert stats.record('edge', 3) == 5
        assert stats.count('edge') == 5

    def test_negative_count_rejected(self):
        stats = StatsAggregator()
        with pytest.raises(AccountingInvariantError):
            stats.record('processed', -1)

    def test_derive(self):
        """Derived stages are differences of other stages."""
        stats = StatsAggregator()
        stats.record('processed', 100)
        stats.record('trimmed', 30)
        assert stats.derive('untrimmed', 'processed', 'trimmed') == 70
        assert stats.count('untrimmed') == 70

    def test_negative_derive_rejected(self):
        """A derivation below zero is an accounting error."""
        stats = StatsAggregator(source='sample.fastq')
        stats.record('processed', 10)
        stats.record('trimmed', 30)
        with pytest.raises(AccountingInvariantError, match='sample.fastq'):
            stats.derive('untrimmed', 'processed', 'trimmed')

    def test_empty_input_warns(self):
        """A zero total warns once and leaves percentages undefined."""
        stats = StatsAggregator()
        with pytest.warns(EmptyInputWarning):
            stats.record('processed', 0)

        assert stats.is_empty
        assert stats.percentage('processed') is None
        assert stats.snapshot()['processed'].display == "0 (undefined)"

    def test_unrecorded_stage_is_zero(self):
        stats = StatsAggregator()
        stats.record('processed', 4)
        assert stats.count('missing') == 0
        assert stats.percentage('missing') == 0

    def test_to_frame(self):
        """DataFrame has one row per stage in recording order."""
        stats = StatsAggregator()
        stats.record('processed', 8)
        stats.record('edge', 1)

        df = stats.to_frame()
        assert list(df.columns) == ['stage', 'count', 'percentage']
        assert list(df['stage']) == ['processed', 'edge']
        assert list(df['percentage']) == ['100.00', '12.50']


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
