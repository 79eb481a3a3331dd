"""
Cascading motif classifier.

Sorts reads into inner, edge and trash categories:

1. Coarse adapter strip with the trimmer (adapters of >=12 bp).
2. Pool sorting: adapter-trimmed reads of at least min_length bases that
   carry the motif form the len9 pool; untrimmed reads that carry the
   motif form the orig_len pool; untrimmed reads without the motif are
   inner reads.
3. For each pool, the search windows are applied in order, each window
   seeing only the reads left unmatched by the previous one. A read that
   matches is an edge read.
4. Edge reads of both pools are merged and reads with an internal motif
   occurrence are discarded.

Author: Kevin R. Roy
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from ..analysis.statistics import StatsAggregator
from ..config import CascadeConfig
from ..errors import AccountingInvariantError
from ..preprocessing.trimming import (
    AdapterPattern,
    Anchor,
    CutadaptTrimmer,
    Trimmer,
    coarse_adapter_patterns,
    motif_presence_patterns,
)
from ..utils.sequence import has_internal_occurrence, reverse_complement
from .models import ClassificationBucket, Provenance, Read
from .windows import MotifSearchWindow, WindowMode, build_search_windows

logger = logging.getLogger(__name__)

# Stage names recorded in the StatsAggregator
STAGE_PROCESSED = 'processed'
STAGE_TRIMMED = 'adapter_trimmed'
STAGE_UNTRIMMED = 'adapter_untrimmed'
STAGE_LEN9_MOTIF = 'len9_with_motif'
STAGE_LEN9_TRASH = 'len9_short_or_without_motif'
STAGE_ORIG_MOTIF = 'orig_len_with_motif'
STAGE_ORIG_NO_MOTIF = 'orig_len_without_motif'
STAGE_EDGE_INTERIM = 'edge_before_internal_filter'
STAGE_INTERNAL_MOTIF = 'edge_internal_motif'
STAGE_INNER = 'inner'
STAGE_EDGE = 'edge'
STAGE_TRASH = 'trash'


def offset_stage(pool: Provenance, offset: int, kind: str) -> str:
    """Stage name for a per-offset counter, e.g. 'len9_offset01_matched'."""
    return f"{pool.value}_offset{offset:02d}_{kind}"


@dataclass
class OffsetStats:
    """Input and matched counts for one window of one pool."""
    pool: Provenance
    offset: int
    label: str
    input_count: int
    matched: int
    matched_by_end: Dict[str, int] = field(default_factory=dict)


@dataclass
class PoolResult:
    """Outcome of running the window table on one pool."""
    pool: Provenance
    edge: List[Read]
    unmatched: List[Read]
    offsets: List[OffsetStats]


@dataclass
class CascadeResult:
    """Result of classifying one read set."""
    inner: List[Read]
    edge: List[Read]
    trash_count: int
    total_reads: int
    offset_stats: List[OffsetStats] = field(default_factory=list)
    stats: Optional[StatsAggregator] = None

    def bucket_counts(self) -> Dict[ClassificationBucket, int]:
        return {
            ClassificationBucket.INNER_ORIGINAL_LENGTH: len(self.inner),
            ClassificationBucket.EDGE_TRIMMED: len(self.edge),
            ClassificationBucket.TRASH: self.trash_count,
        }


def filter_internal_motif(reads: Iterable[Read], motif: str) -> Tuple[List[Read], List[Read]]:
    """
    Split reads by whether the motif occurs away from both read ends.

    Returns:
        Tuple of (kept, discarded)
    """
    kept = []
    discarded = []
    for read in reads:
        if has_internal_occurrence(read.sequence, motif):
            discarded.append(read)
        else:
            kept.append(read)
    return kept, discarded


class MotifCascade:
    """
    Classify reads as inner, edge or trash by motif position.

    Args:
        trimmer: Trimmer capability (cutadapt-backed by default)
        config: Cascade settings
        stats: Aggregator for this file (a new one is created if omitted)
        threads: Run the two pools concurrently when > 1
    """

    def __init__(
        self,
        trimmer: Optional[Trimmer] = None,
        config: Optional[CascadeConfig] = None,
        stats: Optional[StatsAggregator] = None,
        threads: int = 1,
    ):
        self.trimmer = trimmer or CutadaptTrimmer()
        self.config = config or CascadeConfig()
        self.stats = stats
        self.threads = threads

    def classify(
        self,
        reads: Iterable[Read],
        adapter5: Optional[str] = None,
        adapter3: Optional[str] = None,
        motif: Optional[str] = None,
    ) -> CascadeResult:
        """
        Classify a read set.

        Args:
            reads: Raw reads (before any adapter removal)
            adapter5: 5' adapter for the window table (config default if None)
            adapter3: 3' adapter for the window table (reverse complement of
                adapter5 if only adapter5 is given, config default if neither)
            motif: Restriction motif (config default if None)

        Returns:
            CascadeResult with inner reads, filtered edge reads and trash count

        Raises:
            MalformedRecordError: Propagated from the read source
            CollaboratorFailure: If the trimmer fails
            AccountingInvariantError: If the buckets do not add up
        """
        motif = motif.upper() if motif else self.config.motif
        if adapter5 is None and adapter3 is None and motif == self.config.motif:
            windows = self.config.windows()
        else:
            if adapter5 is None:
                adapter5 = self.config.adapter5
                adapter3 = adapter3 or self.config.adapter3
            elif adapter3 is None:
                adapter3 = reverse_complement(adapter5)
            windows = build_search_windows(adapter5.upper(), adapter3.upper(), motif)

        stats = self.stats if self.stats is not None else StatsAggregator()
        reads = list(reads)
        total = len(reads)
        stats.record(STAGE_PROCESSED, total)
        logger.info(f"Classifying {total} reads{_source(stats)}")

        len9_pool, orig_pool, inner, trash_count = self._sort_pools(reads, motif, stats)

        pool_results = self._run_pools(
            [(Provenance.LEN9, len9_pool), (Provenance.ORIG_LEN, orig_pool)],
            windows,
            stats,
        )
        len9_result = pool_results[Provenance.LEN9]
        orig_result = pool_results[Provenance.ORIG_LEN]

        # Pool survivors: len9 reads are trash, orig_len reads stay inner
        trash_count += len(len9_result.unmatched)
        inner.extend(orig_result.unmatched)

        interim = len9_result.edge + orig_result.edge
        stats.record(STAGE_EDGE_INTERIM, len(interim))
        edge, discarded = filter_internal_motif(interim, motif)
        stats.record(STAGE_INTERNAL_MOTIF, len(discarded))
        trash_count += len(discarded)
        logger.info(
            f"Internal motif filter kept {len(edge)} of {len(interim)} edge reads"
        )

        stats.record(STAGE_INNER, len(inner))
        stats.record(STAGE_EDGE, len(edge))
        stats.record(STAGE_TRASH, trash_count)

        unaccounted = total - len(inner) - len(edge) - trash_count
        if unaccounted != 0:
            raise AccountingInvariantError(
                f"Buckets do not sum to input{_source(stats)}: "
                f"inner={len(inner)} edge={len(edge)} trash={trash_count} total={total}"
            )

        return CascadeResult(
            inner=inner,
            edge=edge,
            trash_count=trash_count,
            total_reads=total,
            offset_stats=len9_result.offsets + orig_result.offsets,
            stats=stats,
        )

    def _sort_pools(
        self,
        reads: List[Read],
        motif: str,
        stats: StatsAggregator,
    ) -> Tuple[List[Read], List[Read], List[Read], int]:
        """Coarse adapter strip and split into len9 / orig_len / inner / trash."""
        cfg = self.config

        coarse = self.trimmer.trim(
            reads,
            coarse_adapter_patterns(cfg.coarse_adapters5, cfg.coarse_adapters3),
            min_overlap=cfg.coarse_min_overlap,
            error_rate=cfg.error_rate,
            times=cfg.coarse_times,
            read_wildcards=cfg.read_wildcards,
        )
        stats.record(STAGE_TRIMMED, len(coarse.matched))
        stats.derive(STAGE_UNTRIMMED, STAGE_PROCESSED, STAGE_TRIMMED)
        logger.info(
            f"Adapters >={cfg.coarse_min_overlap} bp removed from {len(coarse.matched)} reads, "
            f"{len(coarse.unmatched)} reads without adapter"
        )

        presence = motif_presence_patterns(motif)

        long_enough = [r for r in coarse.matched if len(r) >= cfg.min_length]
        len9 = self.trimmer.trim(
            long_enough, presence,
            min_overlap=len(motif), error_rate=cfg.error_rate, no_trim=True,
        )
        len9_pool = [r.with_provenance(Provenance.LEN9) for r in len9.matched]
        stats.record(STAGE_LEN9_MOTIF, len(len9_pool))
        trash_count = stats.derive(STAGE_LEN9_TRASH, STAGE_TRIMMED, STAGE_LEN9_MOTIF)

        orig = self.trimmer.trim(
            coarse.unmatched, presence,
            min_overlap=len(motif), error_rate=cfg.error_rate, no_trim=True,
        )
        orig_pool = [r.with_provenance(Provenance.ORIG_LEN) for r in orig.matched]
        inner = [r.with_provenance(Provenance.ORIG_LEN) for r in orig.unmatched]
        stats.record(STAGE_ORIG_MOTIF, len(orig_pool))
        stats.record(STAGE_ORIG_NO_MOTIF, len(inner))

        return len9_pool, orig_pool, inner, trash_count

    def _run_pools(
        self,
        pools: List[Tuple[Provenance, List[Read]]],
        windows: List[MotifSearchWindow],
        stats: StatsAggregator,
    ) -> Dict[Provenance, PoolResult]:
        if self.threads > 1:
            with ThreadPoolExecutor(max_workers=len(pools)) as executor:
                futures = {
                    pool: executor.submit(self.run_pool, pool, reads, windows, stats)
                    for pool, reads in pools
                }
                return {pool: future.result() for pool, future in futures.items()}

        return {
            pool: self.run_pool(pool, reads, windows, stats)
            for pool, reads in pools
        }

    def run_pool(
        self,
        pool: Provenance,
        reads: List[Read],
        windows: List[MotifSearchWindow],
        stats: Optional[StatsAggregator] = None,
    ) -> PoolResult:
        """
        Apply the window table to one pool.

        Each window only sees the reads left unmatched by the previous one.
        """
        edge = []
        offsets = []
        remaining = reads

        for window in windows:
            matched, remaining, by_end = self._run_window(window, remaining)
            edge.extend(matched)

            offset = OffsetStats(
                pool=pool,
                offset=window.offset,
                label=window.label,
                input_count=len(matched) + len(remaining),
                matched=len(matched),
                matched_by_end=by_end,
            )
            offsets.append(offset)

            if stats is not None:
                stats.record(offset_stage(pool, window.offset, 'input'), offset.input_count)
                stats.record(offset_stage(pool, window.offset, 'matched'), offset.matched)
                for end, count in by_end.items():
                    stats.record(offset_stage(pool, window.offset, f'matched{end}'), count)

            logger.debug(
                f"{pool.value} offset {window.offset} ({window.label}): "
                f"{offset.matched}/{offset.input_count} matched"
            )

        logger.info(f"{pool.value}: {len(edge)} edge reads, {len(remaining)} without edge motif")
        return PoolResult(pool=pool, edge=edge, unmatched=remaining, offsets=offsets)

    def _run_window(
        self,
        window: MotifSearchWindow,
        reads: List[Read],
    ) -> Tuple[List[Read], List[Read], Dict[str, int]]:
        """Run one window; returns (matched, unmatched, matched count per half-search)."""
        if not reads:
            return [], [], {}

        if window.mode == WindowMode.SPLIT:
            return self._run_split_window(window, reads)

        result = self.trimmer.trim(
            reads,
            [
                AdapterPattern(window.pattern5, Anchor.START),
                AdapterPattern(window.pattern3, Anchor.END),
            ],
            min_overlap=window.min_overlap,
            error_rate=self.config.error_rate,
            no_trim=window.mode == WindowMode.DETECT,
        )
        return result.matched, result.unmatched, {}

    def _run_split_window(
        self,
        window: MotifSearchWindow,
        reads: List[Read],
    ) -> Tuple[List[Read], List[Read], Dict[str, int]]:
        """5' half-search, then 3' half-search on what the 5' half left."""
        motif = window.motif
        error_rate = self.config.error_rate

        five = self.trimmer.trim(
            reads, [AdapterPattern(window.pattern5, Anchor.START)],
            min_overlap=window.min_overlap, error_rate=error_rate, no_trim=True,
        )
        three = self.trimmer.trim(
            five.unmatched, [AdapterPattern(window.pattern3, Anchor.END)],
            min_overlap=window.min_overlap, error_rate=error_rate, no_trim=True,
        )

        # Matched window becomes the bare motif; quality loses the remnant at the same end
        matched = [
            read.substitute_start(len(window.pattern5), motif)
            for read in five.matched
        ] + [
            read.substitute_end(len(window.pattern3), motif)
            for read in three.matched
        ]

        return matched, three.unmatched, {'5': len(five.matched), '3': len(three.matched)}


def _source(stats: StatsAggregator) -> str:
    return f" from {stats.source}" if stats.source else ''
