"""Tests for damsort.core.cascade."""

import pytest

from conftest import ExactTrimmer, make_read
from damsort.analysis.statistics import StatsAggregator
from damsort.config import CascadeConfig
from damsort.core.cascade import (
    STAGE_EDGE,
    STAGE_INNER,
    STAGE_PROCESSED,
    STAGE_TRASH,
    MotifCascade,
    filter_internal_motif,
    offset_stage,
)
from damsort.core.models import ClassificationBucket, Provenance
from damsort.errors import CollaboratorFailure
from damsort.preprocessing.trimming import DAMID_ADAPTER_5
from damsort.utils.sequence import reverse_complement

DAMID = DAMID_ADAPTER_5


def classify(sequences, threads=1, trimmer=None):
    reads = [make_read(f"r{i}", seq) for i, seq in enumerate(sequences)]
    cascade = MotifCascade(trimmer=trimmer or ExactTrimmer(), threads=threads)
    return cascade.classify(reads)


def sequences(reads):
    return [r.sequence for r in reads]


class TestSingleReadOutcomes:
    """Test where individual reads end up."""

    def test_no_adapter_no_motif_is_inner_unchanged(self):
        """A read without adapter and motif is an unchanged inner read."""
        read = make_read("r0", "ACGTACGTTTAACCGGTTAA", "ABCDEFGHIJKLMNOPQRST")
        result = MotifCascade(trimmer=ExactTrimmer()).classify([read])

        assert len(result.inner) == 1
        assert result.inner[0].sequence == read.sequence
        assert result.inner[0].quality == read.quality
        assert result.edge == []
        assert result.trash_count == 0

    def test_nine_base_read_with_motif_at_start_is_edge(self):
        """Adapter-trimmed read of exactly 9 bases starting with GATC is an edge read."""
        result = classify([DAMID + "GATCAAAAA"])

        assert sequences(result.edge) == ["GATCAAAAA"]
        assert result.edge[0].provenance == Provenance.LEN9
        assert result.bucket_counts()[ClassificationBucket.EDGE_TRIMMED] == 1

    def test_short_trimmed_read_is_trash(self):
        """Adapter-trimmed reads below the minimum length are trash."""
        result = classify([DAMID + "GATCAA"])

        assert result.inner == []
        assert result.edge == []
        assert result.trash_count == 1

    def test_trimmed_read_without_motif_is_trash(self):
        """Adapter-trimmed reads without the motif are trash."""
        result = classify([DAMID + "TTTTTTTTTTTT"])
        assert result.trash_count == 1

    def test_original_length_read_with_remnant_is_trimmed(self):
        """A two-base adapter remnant before the motif is removed."""
        result = classify(["AGGATCTTTTTT"])

        assert sequences(result.edge) == ["GATCTTTTTT"]
        assert result.edge[0].provenance == Provenance.ORIG_LEN

    def test_split_window_replaces_remnant_plus_motif_at_start(self):
        """One remnant base plus motif at the 5' end becomes the bare motif."""
        read = make_read("r0", "GGATCTTTTTTT", "ABCDEFGHIJKL")
        result = MotifCascade(trimmer=ExactTrimmer()).classify([read])

        assert len(result.edge) == 1
        assert result.edge[0].sequence == "GATCTTTTTTT"
        assert result.edge[0].quality == "BCDEFGHIJKL"

    def test_split_window_replaces_motif_plus_remnant_at_end(self):
        """Motif plus one remnant base at the 3' end becomes the bare motif."""
        read = make_read("r0", "TTTTTTTGATCC", "ABCDEFGHIJKL")
        result = MotifCascade(trimmer=ExactTrimmer()).classify([read])

        assert result.edge[0].sequence == "TTTTTTTGATC"
        assert result.edge[0].quality == "ABCDEFGHIJK"

    def test_internal_motif_only_stays_inner(self):
        """An original-length read whose motif is never at an edge stays inner."""
        result = classify(["TTTTTGATCTTTTT"])

        assert sequences(result.inner) == ["TTTTTGATCTTTTT"]
        assert result.edge == []

    def test_edge_read_with_internal_motif_is_trash(self):
        """Edge reads with a second, internal motif are discarded."""
        result = classify(["GATCTTTTGATCTTTT"])

        assert result.edge == []
        assert result.trash_count == 1


class TestAccounting:
    """Test that every read is accounted for exactly once."""

    MIXED = [
        "ACGTACGTTTAACCGGTTAA",     # inner
        DAMID + "GATCAAAAA",        # edge (len9)
        DAMID + "GATCAA",           # trash (short)
        "AGGATCTTTTTT",             # edge (orig_len)
        "TTTTTGATCTTTTT",           # inner (no edge motif)
        "GATCTTTTGATCTTTT",         # trash (internal motif)
        "TTTTTTTGATCC",             # edge (split window)
    ]

    def test_buckets_sum_to_input(self):
        """inner + edge + trash equals the number of input reads."""
        result = classify(self.MIXED)

        counts = result.bucket_counts()
        assert sum(counts.values()) == len(self.MIXED)
        assert counts[ClassificationBucket.INNER_ORIGINAL_LENGTH] == 2
        assert counts[ClassificationBucket.EDGE_TRIMMED] == 3
        assert counts[ClassificationBucket.TRASH] == 2

    def test_stats_match_result(self):
        """Stage counters agree with the returned buckets."""
        stats = StatsAggregator(source='mixed.fastq')
        cascade = MotifCascade(trimmer=ExactTrimmer(), stats=stats)
        result = cascade.classify([make_read(f"r{i}", s) for i, s in enumerate(self.MIXED)])

        assert stats.count(STAGE_PROCESSED) == len(self.MIXED)
        assert stats.count(STAGE_INNER) == len(result.inner)
        assert stats.count(STAGE_EDGE) == len(result.edge)
        assert stats.count(STAGE_TRASH) == result.trash_count

    def test_threaded_pools_give_same_result(self):
        """Running the pools on two threads does not change the outcome."""
        serial = classify(self.MIXED, threads=1)
        threaded = classify(self.MIXED, threads=2)

        assert sequences(serial.edge) == sequences(threaded.edge)
        assert sequences(serial.inner) == sequences(threaded.inner)
        assert serial.trash_count == threaded.trash_count

    def test_empty_input(self):
        """An empty read set classifies to empty buckets."""
        with pytest.warns(UserWarning):
            result = classify([])

        assert result.total_reads == 0
        assert result.inner == [] and result.edge == [] and result.trash_count == 0


class TestCutadaptCascade:
    """Test the cascade with its default cutadapt trimmer."""

    READS = TestAccounting.MIXED + [
        DAMID + "GATCAAAA",                                     # trash (8 bases)
        "GGATCTTTTTTT",                                         # edge (split window, 5')
        "GATC" + "ACTT" * 36 + "CA",                            # edge (150 bp, orig_len)
        DAMID + "GATC" + "ACTT" * 29 + "GATC" + reverse_complement(DAMID),  # edge (150 bp, len9)
    ]

    def test_matches_exact_trimmer(self):
        """Real adapter matching sorts the reads like the error-free trimmer."""
        reads = [make_read(f"r{i}", s) for i, s in enumerate(self.READS)]
        result = MotifCascade().classify(reads)
        expected = classify(self.READS)

        assert sequences(result.inner) == sequences(expected.inner)
        assert sequences(result.edge) == sequences(expected.edge)
        assert result.trash_count == expected.trash_count

        counts = result.bucket_counts()
        assert counts[ClassificationBucket.INNER_ORIGINAL_LENGTH] == 2
        assert counts[ClassificationBucket.EDGE_TRIMMED] == 6
        assert counts[ClassificationBucket.TRASH] == 3

    def test_full_length_read(self):
        """A 150 bp read with both adapters keeps the fragment between them."""
        fragment = "GATC" + "ACTT" * 29 + "GATC"
        read = make_read("r", DAMID + fragment + reverse_complement(DAMID))
        result = MotifCascade().classify([read])

        assert len(read) == 150
        assert sequences(result.edge) == [fragment]
        assert result.edge[0].provenance == Provenance.LEN9

    def test_split_window(self):
        """Remnant plus motif is replaced by the bare motif at either end."""
        reads = [make_read("a", "GGATCTTTTTTT"), make_read("b", "TTTTTTTGATCC")]
        result = MotifCascade().classify(reads)
        assert sequences(result.edge) == ["GATCTTTTTTT", "TTTTTTTGATC"]


class TestClassifyArguments:
    """Test per-call adapter and motif overrides."""

    ADAPTER = "TTGCAACCGGTTA"

    def test_adapter3_derived_from_adapter5(self):
        """A 5' adapter alone pairs with its reverse complement."""
        read = make_read("r", "CCCCCCGATCTA")
        result = MotifCascade(trimmer=ExactTrimmer()).classify([read], adapter5=self.ADAPTER)

        assert sequences(result.edge) == ["CCCCCCGATC"]
        labels = {s.offset: s.label for s in result.offset_stats}
        assert labels[1] == self.ADAPTER[1:] + "GATC"

    def test_motif_is_normalised(self):
        result = MotifCascade(trimmer=ExactTrimmer()).classify(
            [make_read("r", "AGGATCTTTTTT")], motif="gatc",
        )
        assert sequences(result.edge) == ["GATCTTTTTT"]

    def test_default_windows_from_config(self):
        """Without overrides the configured adapter pair is used."""
        config = CascadeConfig(adapter5=self.ADAPTER)
        result = MotifCascade(trimmer=ExactTrimmer(), config=config).classify(
            [make_read("r", "CCCCCCGATCTA")]
        )
        assert sequences(result.edge) == ["CCCCCCGATC"]


class TestWindowChaining:
    """Test that each window only sees reads left by the previous one."""

    def test_matched_read_leaves_later_windows(self):
        """A read matched at offset 11 is not part of the offset 12 input."""
        result = classify(["AGGATCTTTTTT"])

        orig = {s.offset: s for s in result.offset_stats if s.pool == Provenance.ORIG_LEN}
        assert orig[11].input_count == 1
        assert orig[11].matched == 1
        assert orig[12].input_count == 0
        assert orig[13].input_count == 0

    def test_input_counts_never_increase(self):
        """Window input counts are non-increasing within a pool."""
        result = classify(TestAccounting.MIXED)

        for pool in Provenance:
            inputs = [s.input_count for s in result.offset_stats if s.pool == pool]
            assert inputs == sorted(inputs, reverse=True)
            assert len(inputs) == len(DAMID)

    def test_split_window_records_both_ends(self):
        """The split window reports matches per half-search."""
        stats = StatsAggregator()
        cascade = MotifCascade(trimmer=ExactTrimmer(), stats=stats)
        cascade.classify([make_read("a", "GGATCTTTTTTT"), make_read("b", "TTTTTTTGATCC")])

        assert stats.count(offset_stage(Provenance.ORIG_LEN, 12, 'matched5')) == 1
        assert stats.count(offset_stage(Provenance.ORIG_LEN, 12, 'matched3')) == 1
        assert stats.count(offset_stage(Provenance.ORIG_LEN, 12, 'matched')) == 2

    def test_offset_stage_name(self):
        """Per-offset stage names are zero padded."""
        assert offset_stage(Provenance.LEN9, 3, 'input') == 'len9_offset03_input'


class TestInternalMotifFilter:
    """Test filter_internal_motif."""

    def test_keeps_edge_only_reads(self):
        """Reads with the motif only at the ends are kept."""
        reads = [make_read("a", "GATCAAAA"), make_read("b", "AAAAGATC")]
        kept, discarded = filter_internal_motif(reads, "GATC")
        assert kept == reads
        assert discarded == []

    def test_discards_internal(self):
        """Reads with an internal motif are discarded."""
        reads = [make_read("a", "GATCAGATCA")]
        kept, discarded = filter_internal_motif(reads, "GATC")
        assert kept == []
        assert discarded == reads

    def test_idempotent(self):
        """Filtering the kept reads again discards nothing."""
        reads = [make_read(f"r{i}", s) for i, s in enumerate(
            ["GATCAAAA", "AAGATCAA", "AAAAGATC", "GATCGATC", "TTTTTTTT"]
        )]
        kept, _ = filter_internal_motif(reads, "GATC")
        kept_again, discarded_again = filter_internal_motif(kept, "GATC")
        assert kept_again == kept
        assert discarded_again == []


class TestConfiguration:
    """Test cascade configuration handling."""

    def test_custom_motif(self):
        """A different motif is used for pool sorting and windows."""
        config = CascadeConfig(motif="CCGG")
        cascade = MotifCascade(trimmer=ExactTrimmer(), config=config)
        result = cascade.classify([make_read("a", "CCGGTTTTTTTT"), make_read("b", "GATCTTTTTTTT")])

        assert sequences(result.edge) == ["CCGGTTTTTTTT"]
        assert sequences(result.inner) == ["GATCTTTTTTTT"]

    def test_trimmer_failure_propagates(self):
        """A trimmer failure aborts classification."""
        class FailingTrimmer:
            def trim(self, *args, **kwargs):
                raise CollaboratorFailure('trim', 'boom')

        with pytest.raises(CollaboratorFailure):
            MotifCascade(trimmer=FailingTrimmer()).classify([make_read("a", "ACGT")])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
