"""
Command-line interface for DAMSORT.

DAMSORT: DamID Adapter and Motif SORTing

Author: Kevin R. Roy
"""

import logging
import sys
from pathlib import Path

import click

from . import __version__
from .config import (
    ASSEMBLY_INDEXES,
    DEFAULT_MOTIF,
    AlignmentConfig,
    CascadeConfig,
    PipelineConfig,
    SampleConfig,
    parse_sequence_input,
)
from .errors import DamsortError, FileProcessingError
from .preprocessing.trimming import DAMID_ADAPTER_5


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose):
    """DAMSORT: DamID Adapter and Motif SORTing."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


def _cascade_config(adapter, motif):
    try:
        return CascadeConfig(
            adapter5=parse_sequence_input(adapter),
            motif=parse_sequence_input(motif),
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('fastq', type=click.Path(exists=True))
@click.option('--output', '-o', type=click.Path(), required=True,
              help='Output directory')
@click.option('--label', '-l', type=str,
              help='Human-readable data set name (default: FASTQ base name)')
@click.option('--adapter', '-a', type=str, default=DAMID_ADAPTER_5,
              help=f'5\' adapter: DNA sequence or FASTA file path (default: {DAMID_ADAPTER_5})')
@click.option('--motif', '-m', type=str, default=DEFAULT_MOTIF,
              help=f'Restriction motif (default: {DEFAULT_MOTIF})')
@click.option('--threads', '-t', type=int, default=1,
              help='Run the two read pools in parallel when > 1 (default: 1)')
def sort(fastq, output, label, adapter, motif, threads):
    """
    Sort reads into inner and edge reads without aligning.

    \b
    Example:
      damsort sort Dam_only.fastq.gz -o sorted/
    """
    from .pipeline import SortingPipeline

    config = PipelineConfig(
        samples=[],
        output_dir=Path(output),
        cascade=_cascade_config(adapter, motif),
        threads=threads,
        skip_alignment=True,
    )

    try:
        result = SortingPipeline(config).process_file(Path(fastq), label=label)
    except FileProcessingError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if result.skipped:
        click.echo(f"Outputs for {fastq} already exist, nothing to do")
        return

    counts = result.cascade.bucket_counts()
    click.echo(f"\nSorted {result.cascade.total_reads} reads:")
    for bucket, n in counts.items():
        click.echo(f"  {bucket.value}: {n}")
    click.echo(f"Results written to: {output}")


@cli.command()
@click.argument('alignments', type=click.Path(exists=True, allow_dash=True))
@click.option('--output', '-o', 'prefix', type=click.Path(), required=True,
              help='Output prefix (writes PREFIX.bam, PREFIX_2x.bam, PREFIX_3x.bam)')
@click.option('--min-mapq', '-q', type=int, default=25,
              help='Minimum mapping quality for uniquely mapped reads (default: 25)')
def multiplicity(alignments, prefix, min_mapq):
    """
    Split a SAM/BAM file by the number of reported alignments per read.

    Records of each read must be contiguous (aligner output order). Use '-'
    to read SAM text with header from stdin.

    \b
    Example:
      bowtie2 -k 3 --local -x dmel_r5.41 -U edge.fastq | damsort multiplicity - -o edge_local
    """
    import pysam

    from .core.models import MultiplicityBucket
    from .core.multiplicity import MultiplicityClassifier
    from .io.alignments import (
        iter_sam_lines,
        read_alignment_records,
        sam_text_header,
        write_partition_bams,
        write_unmapped_counts,
    )

    classifier = MultiplicityClassifier()
    paths = {}
    try:
        if alignments == '-':
            lines = list(click.get_text_stream('stdin'))
            partition = classifier.classify(iter_sam_lines(lines))
            paths = write_partition_bams(
                partition, sam_text_header(lines), prefix, min_mapq=min_mapq
            )
        else:
            partition = classifier.classify(read_alignment_records(alignments))
            mode = 'rb' if alignments.endswith('.bam') else 'r'
            with pysam.AlignmentFile(alignments, mode, check_sq=False) as template:
                paths = write_partition_bams(partition, template, prefix, min_mapq=min_mapq)
        write_unmapped_counts(partition.unmapped, f"{prefix}_unmapped_reads.txt.gz")
    except (DamsortError, OSError, ValueError) as e:
        for path in paths.values():
            path.unlink(missing_ok=True)
        source = 'stdin' if alignments == '-' else alignments
        click.echo(f"Error: multiplicity failed on {source}: {e}", err=True)
        sys.exit(1)

    counts = partition.read_counts()
    click.echo(f"\nSplit {partition.total_records} records:")
    for bucket in MultiplicityBucket:
        click.echo(f"  {bucket.value}: {counts[bucket]} reads")


@cli.command()
@click.option('--fastq', '-f', type=click.Path(exists=True),
              help='FASTQ file (for single sample)')
@click.option('--sample-key', '-s', type=click.Path(exists=True),
              help='Sample key TSV/CSV with sample_id and fastq columns')
@click.option('--config', '-c', 'config_path', type=click.Path(exists=True),
              help='YAML configuration file')
@click.option('--output', '-o', type=click.Path(),
              help='Output directory (overrides output_dir in --config)')
@click.option('--assembly', type=click.Choice(sorted(ASSEMBLY_INDEXES)),
              help='Genome assembly for alignment')
@click.option('--index-dir', type=click.Path(), default='~/data/DAM/indexes',
              help='Directory holding bowtie2 indexes (default: ~/data/DAM/indexes)')
@click.option('--adapter', '-a', type=str, default=DAMID_ADAPTER_5,
              help=f'5\' adapter: DNA sequence or FASTA file path (default: {DAMID_ADAPTER_5})')
@click.option('--motif', '-m', type=str, default=DEFAULT_MOTIF,
              help=f'Restriction motif (default: {DEFAULT_MOTIF})')
@click.option('--threads', '-t', type=int, default=4,
              help='Number of aligner threads (default: 4)')
@click.option('--skip-alignment', is_flag=True,
              help='Only sort reads, do not align')
def run(fastq, sample_key, config_path, output, assembly, index_dir, adapter, motif,
        threads, skip_alignment):
    """
    Run the full pipeline: sort reads, align and split by multiplicity.

    \b
    Example (single sample):
      damsort run --fastq Dam_only.fastq.gz -o results/ --assembly dm3

    \b
    Example (sample key):
      damsort run --sample-key samples.tsv -o results/ --assembly dm3

    \b
    Example (config file):
      damsort run --config damsort_config.yaml
    """
    from .io.sample_key import load_sample_key
    from .pipeline import SortingPipeline, output_base

    sources = [s for s in (fastq, sample_key, config_path) if s]
    if len(sources) != 1:
        click.echo("Error: Exactly one of --fastq, --sample-key or --config must be provided", err=True)
        sys.exit(1)

    try:
        if config_path:
            config = PipelineConfig.from_yaml(Path(config_path))
            if output:
                config.output_dir = Path(output)
            if skip_alignment:
                config.skip_alignment = True
        else:
            if not output:
                click.echo("Error: --output is required without --config", err=True)
                sys.exit(1)

            if sample_key:
                samples = [
                    SampleConfig(sample_id=s.sample_id, fastq=s.fastq, metadata=s.metadata)
                    for s in load_sample_key(Path(sample_key))
                ]
            else:
                samples = [SampleConfig(sample_id=output_base(Path(fastq)), fastq=Path(fastq))]

            config = PipelineConfig(
                samples=samples,
                output_dir=Path(output),
                cascade=_cascade_config(adapter, motif),
                alignment=AlignmentConfig(assembly=assembly, index_dir=Path(index_dir), threads=threads),
                skip_alignment=skip_alignment,
            )

        pipeline = SortingPipeline(config)
    except (ValueError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not config.skip_alignment:
        from .integrations.aligners import AlignerManager

        manager = AlignerManager()
        missing = manager.check_requirements()
        if missing:
            click.echo(manager.get_installation_instructions(missing), err=True)
            sys.exit(1)

    click.echo(f"\nProcessing {len(config.samples)} sample(s)...")
    results = pipeline.process_samples()

    failed = [r for r in results if not r.success]
    for r in failed:
        click.echo(f"Error: {r.error}", err=True)

    click.echo(f"\nProcessed {len(results) - len(failed)} of {len(results)} samples")
    click.echo(f"Results written to: {config.output_dir}")
    if failed:
        sys.exit(1)


@cli.command()
@click.option('--output', '-o', type=click.Path(), default='damsort_config.yaml',
              help='Output config file path')
@click.option('--sample-key', '-s', type=click.Path(),
              help='Also write a template sample key to this path')
def init(output, sample_key):
    """Generate a template configuration file."""
    template = f'''# DAMSORT Configuration Template
# Edit this file to configure your analysis

# Samples (TSV/CSV with sample_id and fastq columns)
sample_key: samples.tsv

# Or list samples directly:
# samples:
#   - sample_id: Dam_only_rep1
#     fastq: Dam_only_rep1.fastq.gz

# Output directory
output_dir: ./results

# Run the two read pools in parallel
threads: 1

# Only sort reads, do not align
skip_alignment: false

# Summary CSV (appended, one row per file)
stats_csv: cutadapt_statistics.csv

cascade:
  adapter5: {DAMID_ADAPTER_5}       # 3' adapter defaults to its reverse complement
  motif: {DEFAULT_MOTIF}
  error_rate: 0.01
  min_length: 9                   # shortest adapter-trimmed read kept

alignment:
  assembly: dm3                   # one of: {', '.join(ASSEMBLY_INDEXES)}
  index_dir: ~/data/DAM/indexes
  max_alignments: 3
  min_mapq: 25
  threads: 4
'''

    with open(output, 'w') as f:
        f.write(template)

    click.echo(f"Generated configuration template: {output}")

    if sample_key:
        from .io.sample_key import create_sample_key_template

        create_sample_key_template(Path(sample_key))
        click.echo(f"Generated sample key template: {sample_key}")

    click.echo("\nEdit this file and run:")
    click.echo(f"  damsort run --config {output}")


if __name__ == '__main__':
    cli()
