"""
Main pipeline orchestration for DAMSORT.

For each FASTQ file: classify reads with the motif cascade, write inner
and edge reads, align both sets and split the alignments by multiplicity.

Author: Kevin R. Roy
"""

import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Protocol
from dataclasses import dataclass, field
import logging
import pysam

from .analysis.statistics import StatsAggregator
from .config import PipelineConfig, SampleConfig
from .core.cascade import CascadeResult, MotifCascade
from .core.models import MultiplicityBucket
from .core.multiplicity import MultiplicityClassifier
from .errors import CollaboratorFailure, DamsortError, FileProcessingError
from .integrations.aligners import AlignerResult, Bowtie2Aligner
from .io.alignments import (
    PARTITION_SUFFIXES,
    count_passing_mapq,
    read_alignment_records,
    write_partition_bams,
    write_unmapped_counts,
)
from .io.fastq import atomic_output, read_fastq, write_fastq
from .io.output import (
    CsvReporter,
    LoggingReporter,
    AnyReporter,
    publish_snapshot,
    publish_summary,
    summary_row,
    write_offset_table,
    write_stats_table,
)
from .preprocessing.trimming import CutadaptTrimmer, Trimmer

logger = logging.getLogger(__name__)

FASTQ_SUFFIXES = ('.fastq.gz', '.fq.gz', '.fastq', '.fq')
READ_LABELS = ('inner', 'edge')


class Aligner(Protocol):
    """Capability that aligns a FASTQ file to SAM."""

    def align(self, fastq: Path, output_sam: Path) -> AlignerResult:
        ...


def output_base(fastq: Path) -> str:
    """File name without the FASTQ extension."""
    name = Path(fastq).name
    for suffix in FASTQ_SUFFIXES:
        if name.endswith(suffix):
            return name[:-len(suffix)]
    return Path(name).stem


@dataclass
class FileResult:
    """Outcome of processing one FASTQ file."""
    label: str
    fastq: Path
    success: bool
    skipped: bool = False
    cascade: Optional[CascadeResult] = None
    multiplicity: Dict[str, Dict[MultiplicityBucket, int]] = field(default_factory=dict)
    outputs: Dict[str, Path] = field(default_factory=dict)
    error: Optional[FileProcessingError] = None


class SortingPipeline:
    """
    Main pipeline orchestrator.

    Args:
        config: Pipeline configuration
        trimmer: Trimmer for the cascade (cutadapt-backed by default)
        aligner: Aligner for inner/edge reads (bowtie2 on the configured
            assembly by default)
        reporters: Statistics sinks (log lines plus the summary CSV by default)
    """

    def __init__(
        self,
        config: PipelineConfig,
        trimmer: Optional[Trimmer] = None,
        aligner: Optional[Aligner] = None,
        reporters: Optional[List[AnyReporter]] = None,
    ):
        self.config = config
        self.trimmer = trimmer or CutadaptTrimmer()

        if aligner is None and not config.skip_alignment:
            if config.alignment.index_prefix is None:
                raise ValueError("An assembly is required unless alignment is skipped")
            aligner = Bowtie2Aligner(
                index_prefix=config.alignment.index_prefix,
                threads=config.alignment.threads,
                max_alignments=config.alignment.max_alignments,
                local=config.alignment.local,
            )
        self.aligner = aligner

        if reporters is None:
            reporters = [
                LoggingReporter(),
                CsvReporter(config.output_dir / config.stats_csv),
            ]
        self.reporters = reporters

    def expected_outputs(self, base: str) -> Dict[str, Path]:
        """Final output paths for one file, keyed by output name."""
        out = self.config.output_dir
        outputs = {
            'inner_fastq': out / f"{base}_inner.fastq",
            'edge_fastq': out / f"{base}_edge.fastq",
            'stats': out / f"{base}_stats.tsv",
            'offsets': out / f"{base}_offsets.tsv",
        }
        if not self.config.skip_alignment:
            for label in READ_LABELS:
                for bucket, suffix in PARTITION_SUFFIXES.items():
                    outputs[f"{label}_{bucket.value}_bam"] = out / f"{base}_{label}_local{suffix}.bam"
                outputs[f"{label}_unmapped"] = out / f"{base}_{label}_unmapped_reads.txt.gz"
            outputs['bowtie_stats'] = out / f"{base}_local.bowtie_stats"
        return outputs

    def process_file(self, fastq: Path, label: Optional[str] = None) -> FileResult:
        """
        Run the full workflow on one FASTQ file.

        Args:
            fastq: Input FASTQ (plain or gzipped)
            label: Human-readable data set name (file base name if None)

        Returns:
            FileResult (skipped=True if all outputs already exist)

        Raises:
            FileProcessingError: If any stage fails; outputs written for
                this file during the run are removed
        """
        fastq = Path(fastq)
        base = output_base(fastq)
        label = label or base
        outputs = self.expected_outputs(base)

        if all(p.exists() for p in outputs.values()):
            logger.info(f"All outputs for {fastq.name} exist, skipping")
            return FileResult(label=label, fastq=fastq, success=True, skipped=True, outputs=outputs)

        self.config.output_dir.mkdir(parents=True, exist_ok=True)
        written: List[Path] = []
        stage = 'read'

        try:
            stats = StatsAggregator(source=fastq.name)
            reads = list(read_fastq(fastq))

            stage = 'classify'
            cascade = MotifCascade(
                trimmer=self.trimmer,
                config=self.config.cascade,
                stats=stats,
                threads=self.config.threads,
            )
            result = cascade.classify(reads)

            stage = 'write'
            for name, reads_out in (('inner_fastq', result.inner), ('edge_fastq', result.edge)):
                with atomic_output(outputs[name]) as tmp:
                    write_fastq(reads_out, tmp)
                written.append(outputs[name])

            multiplicity = {}
            if not self.config.skip_alignment:
                stage = 'align'
                multiplicity = self._align_and_split(base, outputs, stats, written)

            stage = 'report'
            write_stats_table(stats, outputs['stats'])
            written.append(outputs['stats'])
            write_offset_table(result, outputs['offsets'])
            written.append(outputs['offsets'])

            publish_snapshot(stats, self.reporters)
            publish_summary(summary_row(label, fastq.name, result), self.reporters)

        except (DamsortError, OSError, ValueError) as e:
            for path in written:
                path.unlink(missing_ok=True)
            raise FileProcessingError(stage, str(fastq), e) from e

        counts = result.bucket_counts()
        logger.info(
            f"{label}: " + ', '.join(f"{b.value}={n}" for b, n in counts.items())
        )
        return FileResult(
            label=label,
            fastq=fastq,
            success=True,
            cascade=result,
            multiplicity=multiplicity,
            outputs=outputs,
        )

    def _align_and_split(
        self,
        base: str,
        outputs: Dict[str, Path],
        stats: StatsAggregator,
        written: List[Path],
    ) -> Dict[str, Dict[MultiplicityBucket, int]]:
        """Align inner and edge reads and write multiplicity outputs."""
        out = self.config.output_dir
        min_mapq = self.config.alignment.min_mapq
        classifier = MultiplicityClassifier()
        multiplicity = {}
        logs = []

        with tempfile.TemporaryDirectory(dir=out, prefix=f".{base}.") as tmpdir:
            for label in READ_LABELS:
                sam_path = Path(tmpdir) / f"{base}_{label}.sam"
                aligned = self.aligner.align(outputs[f"{label}_fastq"], sam_path)
                if not aligned.success:
                    raise CollaboratorFailure(
                        'align', f"{aligned.aligner} failed on {label} reads: {aligned.error_message}"
                    )
                logs.append(f"# {label}\n{aligned.log}")

                partition = classifier.classify(read_alignment_records(sam_path))
                counts = partition.read_counts()
                multiplicity[label] = counts
                for bucket, n in counts.items():
                    stats.record(f"{label}_{bucket.value}", n)
                stats.record(
                    f"{label}_unique_mapq{min_mapq}",
                    count_passing_mapq(partition.unique, min_mapq),
                )

                with pysam.AlignmentFile(str(sam_path), 'r', check_sq=False) as template:
                    paths = write_partition_bams(
                        partition, template, out / f"{base}_{label}_local", min_mapq=min_mapq
                    )
                written.extend(paths.values())

                write_unmapped_counts(partition.unmapped, outputs[f"{label}_unmapped"])
                written.append(outputs[f"{label}_unmapped"])

        with atomic_output(outputs['bowtie_stats']) as tmp:
            tmp.write_text('\n'.join(logs))
        written.append(outputs['bowtie_stats'])

        return multiplicity

    def process_samples(self, samples: Optional[List[SampleConfig]] = None) -> List[FileResult]:
        """
        Process samples one at a time.

        A failed file is logged and recorded; the remaining files continue.

        Args:
            samples: Samples to process (uses config.samples if None)

        Returns:
            List of FileResult objects, one per sample
        """
        if samples is None:
            samples = self.config.samples

        results = []
        for i, sample in enumerate(samples):
            logger.info(f"Processing sample {i+1}/{len(samples)}: {sample.sample_id}")
            try:
                results.append(self.process_file(sample.fastq, label=sample.sample_id))
            except FileProcessingError as e:
                logger.error(str(e))
                results.append(FileResult(
                    label=sample.sample_id,
                    fastq=Path(sample.fastq),
                    success=False,
                    error=e,
                ))

        n_failed = sum(1 for r in results if not r.success)
        if n_failed:
            logger.warning(f"{n_failed} of {len(results)} files failed")
        return results
