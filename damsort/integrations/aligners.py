"""
Aligner wrapper for bowtie2.

Author: Kevin R. Roy
"""

import re
import subprocess
from pathlib import Path
from typing import Dict, List, Optional
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)


@dataclass
class Bowtie2Stats:
    """Alignment summary printed by bowtie2 on stderr."""
    total_reads: int = 0
    aligned_zero: int = 0
    aligned_once: int = 0
    aligned_multi: int = 0
    overall_rate: Optional[str] = None  # as printed, e.g. '94.04%'

    @property
    def aligned(self) -> int:
        return self.aligned_once + self.aligned_multi


_STAT_PATTERNS = {
    'total_reads': re.compile(r'^\s*(\d+) reads; of these:', re.MULTILINE),
    'aligned_zero': re.compile(r'^\s*(\d+) \([\d.]+%\) aligned 0 times', re.MULTILINE),
    'aligned_once': re.compile(r'^\s*(\d+) \([\d.]+%\) aligned exactly 1 time', re.MULTILINE),
    'aligned_multi': re.compile(r'^\s*(\d+) \([\d.]+%\) aligned >1 times', re.MULTILINE),
}
_RATE_PATTERN = re.compile(r'^\s*([\d.]+%) overall alignment rate', re.MULTILINE)


def parse_bowtie2_stats(text: str) -> Bowtie2Stats:
    """
    Parse the bowtie2 alignment summary.

    Lines that are not part of the summary (e.g. timing output from -t)
    are ignored. Missing fields stay at their defaults.

    Example:
        >>> parse_bowtie2_stats("100 reads; of these:\\n  ...").total_reads
        100
    """
    stats = Bowtie2Stats()
    for name, pattern in _STAT_PATTERNS.items():
        match = pattern.search(text)
        if match:
            setattr(stats, name, int(match.group(1)))
    rate = _RATE_PATTERN.search(text)
    if rate:
        stats.overall_rate = rate.group(1)
    return stats


@dataclass
class AlignerResult:
    """Result from running an aligner."""
    aligner: str
    output_path: Path
    success: bool
    error_message: Optional[str] = None
    log: str = ''
    stats: Optional[Bowtie2Stats] = None

    @property
    def reads_total(self) -> int:
        return self.stats.total_reads if self.stats else 0

    @property
    def reads_aligned(self) -> int:
        return self.stats.aligned if self.stats else 0


class AlignerManager:
    """Manage external aligner availability."""

    REQUIRED_ALIGNERS = ['bowtie2']

    def __init__(self):
        self.available: Dict[str, bool] = {}
        self._detect_aligners()

    def _detect_aligners(self):
        """Check which aligners are available."""
        for tool in self.REQUIRED_ALIGNERS:
            try:
                subprocess.run([tool, '--version'], capture_output=True, timeout=5)
                self.available[tool] = True
            except (FileNotFoundError, subprocess.TimeoutExpired):
                self.available[tool] = False

    def check_requirements(self) -> List[str]:
        """Return list of missing required aligners."""
        return [a for a in self.REQUIRED_ALIGNERS if not self.available.get(a)]

    def get_installation_instructions(self, missing: List[str]) -> str:
        """Return installation instructions for missing tools."""
        return f"""
Missing aligners: {', '.join(missing)}

Install via conda:
    conda install -c bioconda bowtie2

Or via mamba (faster):
    mamba install -c bioconda bowtie2
"""


class Bowtie2Aligner:
    """
    Single-end bowtie2 alignment to a prebuilt index.

    Args:
        index_prefix: bowtie2 index basename (-x)
        threads: Number of threads (-p)
        max_alignments: Alignments reported per read (-k)
        local: Use local alignment mode
    """

    def __init__(
        self,
        index_prefix: Path,
        threads: int = 4,
        max_alignments: int = 3,
        local: bool = True,
    ):
        self.index_prefix = Path(index_prefix)
        self.threads = threads
        self.max_alignments = max_alignments
        self.local = local

    def command(self, fastq: Path, output_sam: Path) -> List[str]:
        cmd = [
            'bowtie2',
            '-k', str(self.max_alignments),
            '-p', str(self.threads),
            '-t',
            '--phred33',
        ]
        if self.local:
            cmd.append('--local')
        cmd += ['-x', str(self.index_prefix), '-U', str(fastq), '-S', str(output_sam)]
        return cmd

    def align(self, fastq: Path, output_sam: Path) -> AlignerResult:
        """
        Align reads and write SAM in bowtie2 output order.

        Args:
            fastq: Input FASTQ
            output_sam: Path for output SAM file

        Returns:
            AlignerResult with the parsed bowtie2 summary
        """
        cmd = self.command(fastq, output_sam)
        logger.info(f"Running: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        except subprocess.CalledProcessError as e:
            return AlignerResult(
                aligner='bowtie2',
                output_path=Path(output_sam),
                success=False,
                error_message=(e.stderr or str(e)).strip(),
                log=e.stderr or '',
            )
        except OSError as e:
            return AlignerResult(
                aligner='bowtie2',
                output_path=Path(output_sam),
                success=False,
                error_message=str(e),
            )

        stats = parse_bowtie2_stats(result.stderr)
        logger.info(
            f"bowtie2: {stats.total_reads} reads, {stats.aligned_once} unique, "
            f"{stats.aligned_multi} multi, {stats.aligned_zero} unaligned "
            f"({stats.overall_rate or 'n/a'} overall)"
        )
        return AlignerResult(
            aligner='bowtie2',
            output_path=Path(output_sam),
            success=True,
            log=result.stderr,
            stats=stats,
        )
