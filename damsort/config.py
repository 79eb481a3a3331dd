"""
Configuration classes for DAMSORT.

DAMSORT: DamID Adapter and Motif SORTing

Author: Kevin R. Roy
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Dict, Any, Optional
import yaml

from .core.windows import MotifSearchWindow, build_search_windows
from .preprocessing.trimming import DAMID_ADAPTER_5, ILLUMINA_ADAPTER_5
from .utils.sequence import is_dna_sequence, reverse_complement


DEFAULT_MOTIF = "GATC"

# Assembly name -> bowtie2 index basename
ASSEMBLY_INDEXES = {
    'dm3': 'dmel_r5.41',
    'hg18': 'hg18',
    'hg19': 'hg19',
    'mm9': 'mm9',
}


def load_fasta(path: Path) -> str:
    """First record of a FASTA file as one uppercase sequence."""
    chunks = []
    with open(path) as f:
        for line in f:
            line = line.strip()
            if line.startswith('>'):
                if chunks:
                    break
                continue
            chunks.append(line)
    sequence = ''.join(chunks).upper()
    if not sequence:
        raise ValueError(f"No sequence found in FASTA file: {path}")
    return sequence


def parse_sequence_input(value: str) -> str:
    """
    Resolve an adapter or motif given on the command line or in YAML.

    A literal ACGTN string is returned uppercased; anything else must
    name a FASTA file whose first record is used.

    Examples:
        >>> parse_sequence_input("ggtcgcggccgag")
        'GGTCGCGGCCGAG'
    """
    value = value.strip()
    if is_dna_sequence(value):
        return value.upper()

    path = Path(value).expanduser()
    if not path.is_file():
        raise ValueError(f"Not a DNA sequence and file not found: {value}")
    return load_fasta(path)


def _require_dna(name: str, value: str) -> str:
    if not is_dna_sequence(value):
        raise ValueError(f"{name} must be a DNA sequence (ACGTN), got: {value!r}")
    return value.upper()


@dataclass
class CascadeConfig:
    """Adapter, motif and threshold settings for the motif cascade."""
    adapter5: str = DAMID_ADAPTER_5
    adapter3: Optional[str] = None  # reverse complement of adapter5 if not set
    motif: str = DEFAULT_MOTIF

    # Coarse adapter strip
    coarse_adapters5: List[str] = field(default_factory=lambda: [DAMID_ADAPTER_5, ILLUMINA_ADAPTER_5])
    coarse_adapters3: Optional[List[str]] = None  # reverse complements if not set
    coarse_min_overlap: int = 12
    coarse_times: int = 3
    read_wildcards: bool = True

    error_rate: float = 0.01
    min_length: int = 9  # inclusive

    def __post_init__(self):
        self.adapter5 = _require_dna('adapter5', self.adapter5)
        if self.adapter3 is None:
            self.adapter3 = reverse_complement(self.adapter5)
        self.adapter3 = _require_dna('adapter3', self.adapter3)
        self.motif = _require_dna('motif', self.motif)

        self.coarse_adapters5 = [_require_dna('coarse adapter', a) for a in self.coarse_adapters5]
        if self.coarse_adapters3 is None:
            self.coarse_adapters3 = [reverse_complement(a) for a in self.coarse_adapters5]
        self.coarse_adapters3 = [_require_dna('coarse adapter', a) for a in self.coarse_adapters3]

        if not 0 <= self.error_rate < 1:
            raise ValueError(f"error_rate must be in [0, 1), got {self.error_rate}")
        if self.min_length < 1:
            raise ValueError(f"min_length must be positive, got {self.min_length}")

    def windows(self) -> List[MotifSearchWindow]:
        """Ordered search window table for this adapter pair."""
        return build_search_windows(self.adapter5, self.adapter3, self.motif)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'CascadeConfig':
        known = {f for f in cls.__dataclass_fields__}
        unknown = set(d) - known
        if unknown:
            raise ValueError(f"Unknown cascade options: {', '.join(sorted(unknown))}")
        return cls(**d)


@dataclass
class AlignmentConfig:
    """Configuration for read alignment and multiplicity splitting."""
    assembly: Optional[str] = None
    index_dir: Path = Path('~/data/DAM/indexes')
    max_alignments: int = 3  # bowtie2 -k
    local: bool = True
    min_mapq: int = 25
    threads: int = 4

    def __post_init__(self):
        self.index_dir = Path(self.index_dir)
        if self.assembly is not None and self.assembly not in ASSEMBLY_INDEXES:
            raise ValueError(
                f"Assembly '{self.assembly}' not known, "
                f"expected one of: {', '.join(ASSEMBLY_INDEXES)}"
            )

    @property
    def index_prefix(self) -> Optional[Path]:
        """Bowtie2 index prefix for the configured assembly."""
        if self.assembly is None:
            return None
        return self.index_dir.expanduser() / ASSEMBLY_INDEXES[self.assembly]


@dataclass
class SampleConfig:
    """Sample-level configuration."""
    sample_id: str
    fastq: Path
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Dict) -> 'SampleConfig':
        """Create from dictionary."""
        return cls(
            sample_id=str(d['sample_id']),
            fastq=Path(d['fastq']),
            metadata={k: v for k, v in d.items()
                     if k not in ('sample_id', 'fastq')},
        )


@dataclass
class PipelineConfig:
    """Full pipeline configuration."""
    samples: List[SampleConfig]
    output_dir: Path

    cascade: CascadeConfig = field(default_factory=CascadeConfig)
    alignment: AlignmentConfig = field(default_factory=AlignmentConfig)

    # Processing options
    threads: int = 1  # >1 runs the two read pools concurrently
    skip_alignment: bool = False
    stats_csv: str = 'cutadapt_statistics.csv'

    def __post_init__(self):
        self.output_dir = Path(self.output_dir)

    @classmethod
    def from_yaml(cls, path: Path) -> 'PipelineConfig':
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        cascade = CascadeConfig.from_dict(data.get('cascade', {}))
        alignment = AlignmentConfig(**data.get('alignment', {}))

        # Load samples
        samples = []
        if 'sample_key' in data:
            from .io.sample_key import load_sample_key
            for sample in load_sample_key(Path(data['sample_key']), validate=False):
                samples.append(SampleConfig(
                    sample_id=sample.sample_id,
                    fastq=sample.fastq,
                    metadata=sample.metadata,
                ))
        for entry in data.get('samples', []):
            samples.append(SampleConfig.from_dict(entry))

        return cls(
            samples=samples,
            output_dir=Path(data.get('output_dir', './results')),
            cascade=cascade,
            alignment=alignment,
            threads=data.get('threads', 1),
            skip_alignment=data.get('skip_alignment', False),
            stats_csv=data.get('stats_csv', 'cutadapt_statistics.csv'),
        )
