"""Tests for damsort.preprocessing.trimming (cutadapt-backed)."""

import pytest

from conftest import make_read
from damsort.preprocessing.trimming import (
    DAMID_ADAPTER_5,
    AdapterPattern,
    Anchor,
    CutadaptTrimmer,
    coarse_adapter_patterns,
    motif_presence_patterns,
)
from damsort.utils.sequence import reverse_complement


class TestAdapterPattern:
    """Test pattern display."""

    def test_anchored(self):
        assert str(AdapterPattern("AG", Anchor.START)) == "^AG"
        assert str(AdapterPattern("CT", Anchor.END)) == "CT$"

    def test_unanchored(self):
        assert str(AdapterPattern("GATC", Anchor.START, anchored=False)) == "-g GATC"
        assert str(AdapterPattern("GATC", Anchor.END, anchored=False)) == "-a GATC"


class TestCutadaptTrimmer:
    """Test trimming with cutadapt adapter classes."""

    def test_coarse_strip_front_adapter(self):
        """Test full 5' DamID adapter is removed."""
        read = make_read("r", DAMID_ADAPTER_5 + "GATCAAAAA")
        result = CutadaptTrimmer().trim(
            [read],
            coarse_adapter_patterns([DAMID_ADAPTER_5], [reverse_complement(DAMID_ADAPTER_5)]),
            min_overlap=12, error_rate=0.01, times=3, read_wildcards=True,
        )
        assert [r.sequence for r in result.matched] == ["GATCAAAAA"]
        assert result.matched[0].quality == "I" * 9
        assert result.unmatched == []

    def test_coarse_strip_back_adapter(self):
        """Test full 3' adapter is removed with everything after it."""
        read = make_read("r", "TTTTGATC" + reverse_complement(DAMID_ADAPTER_5) + "AC")
        result = CutadaptTrimmer().trim(
            [read],
            coarse_adapter_patterns([DAMID_ADAPTER_5], [reverse_complement(DAMID_ADAPTER_5)]),
            min_overlap=12, error_rate=0.01, times=3,
        )
        assert [r.sequence for r in result.matched] == ["TTTTGATC"]

    def test_no_adapter(self):
        """Test reads without adapter are returned unmatched and unchanged."""
        read = make_read("r", "ACGTACGTTTAACCGGTTAA")
        result = CutadaptTrimmer().trim(
            [read],
            coarse_adapter_patterns([DAMID_ADAPTER_5], [reverse_complement(DAMID_ADAPTER_5)]),
            min_overlap=12, error_rate=0.01,
        )
        assert result.matched == []
        assert result.unmatched == [read]

    def test_anchored_prefix(self):
        """Test anchored 5' pattern is removed only at the read start."""
        reads = [make_read("a", "AGGATCTTTT"), make_read("b", "TTAGGATCTT")]
        result = CutadaptTrimmer().trim(
            reads, [AdapterPattern("AG", Anchor.START)], min_overlap=2, error_rate=0.01,
        )
        assert [r.sequence for r in result.matched] == ["GATCTTTT"]
        assert [r.read_id for r in result.unmatched] == ["b"]

    def test_anchored_suffix(self):
        """Test anchored 3' pattern is removed only at the read end."""
        reads = [make_read("a", "TTTTGATCCT")]
        result = CutadaptTrimmer().trim(
            reads, [AdapterPattern("CT", Anchor.END)], min_overlap=2, error_rate=0.01,
        )
        assert [r.sequence for r in result.matched] == ["TTTTGATC"]

    def test_no_trim_reports_match_only(self):
        """Test no_trim keeps matched reads unchanged."""
        reads = [make_read("a", "TTGATCTT"), make_read("b", "TTTTTTTT")]
        result = CutadaptTrimmer().trim(
            reads, motif_presence_patterns("GATC"), min_overlap=4, error_rate=0.01, no_trim=True,
        )
        assert result.matched == [reads[0]]
        assert result.unmatched == [reads[1]]
        assert result.processed == 2

    def test_motif_found_from_both_ends(self):
        """Test a motif hit by both presence patterns is one match."""
        reads = [make_read("a", "GATCAAAAA"), make_read("b", "AAAAAGATC")]
        result = CutadaptTrimmer().trim(
            reads, motif_presence_patterns("GATC"), min_overlap=4, error_rate=0.01, no_trim=True,
        )
        assert result.matched == reads
        assert result.unmatched == []

    def test_higher_scoring_pattern_wins(self):
        """Test the longer of two matching patterns decides the trim."""
        read = make_read("a", "AGGATCTTTTGATCCT")
        result = CutadaptTrimmer().trim(
            [read],
            [AdapterPattern("AG", Anchor.START), AdapterPattern("GATCCT", Anchor.END)],
            min_overlap=2, error_rate=0.01,
        )
        assert [r.sequence for r in result.matched] == ["AGGATCTTTT"]

    def test_requires_patterns(self):
        with pytest.raises(ValueError):
            CutadaptTrimmer().trim([], [], min_overlap=1, error_rate=0.0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
