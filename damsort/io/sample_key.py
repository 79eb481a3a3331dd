"""
Sample key parsing and validation.

Author: Kevin R. Roy
"""

from pathlib import Path
from typing import List, Dict
from dataclasses import dataclass
import pandas as pd
import logging

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ('sample_id', 'fastq')


@dataclass
class Sample:
    """Represents a single sample.

    Attributes:
        sample_id: Human-readable sample name, used as the output label
        fastq: Path to the single-end FASTQ file (plain or gzipped)
        metadata: Additional columns from the sample key
    """
    sample_id: str
    fastq: Path
    metadata: Dict = None

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}

    def validate(self) -> List[str]:
        """Validate sample configuration. Returns list of errors."""
        errors = []

        if not self.fastq.exists():
            errors.append(f"FASTQ file not found: {self.fastq}")

        name = self.fastq.name
        if not name.endswith(('.fastq', '.fq', '.fastq.gz', '.fq.gz')):
            errors.append(f"FASTQ file should end in .fastq, .fq, .fastq.gz or .fq.gz: {name}")

        return errors


def load_sample_key(
    path: Path,
    validate: bool = True
) -> List[Sample]:
    """
    Load samples from a sample key file.

    Tab-separated unless the file name ends in '.csv'.

    Required columns:
    - sample_id: Human-readable sample name
    - fastq: Path to the FASTQ file; relative paths are resolved against
      the sample key's directory

    Additional columns are stored as metadata.

    Args:
        path: Path to sample key
        validate: If True, validate that files exist

    Returns:
        List of Sample objects
    """
    path = Path(path)
    sep = ',' if path.suffix.lower() == '.csv' else '\t'
    df = pd.read_csv(path, sep=sep, dtype=str)

    for column in REQUIRED_COLUMNS:
        if column not in df.columns:
            raise ValueError(f"Sample key must have '{column}' column")

    duplicated = df['sample_id'][df['sample_id'].duplicated()].unique()
    if len(duplicated) > 0:
        raise ValueError(f"Duplicate sample_id values in sample key: {', '.join(duplicated)}")

    samples = []
    errors = []

    for _, row in df.iterrows():
        sample_id = str(row['sample_id']).strip()
        fastq = Path(str(row['fastq']).strip())
        if not fastq.is_absolute():
            fastq = path.parent / fastq

        metadata = {
            k: v for k, v in row.items()
            if k not in REQUIRED_COLUMNS and pd.notna(v)
        }

        sample = Sample(sample_id=sample_id, fastq=fastq, metadata=metadata)

        if validate:
            for err in sample.validate():
                errors.append(f"{sample_id}: {err}")

        samples.append(sample)

    if errors:
        logger.warning(f"Sample key validation found {len(errors)} errors:")
        for err in errors[:10]:
            logger.warning(f"  {err}")
        if len(errors) > 10:
            logger.warning(f"  ... and {len(errors) - 10} more")

    logger.info(f"Loaded {len(samples)} samples from {path}")
    return samples


def create_sample_key_template(output_path: Path):
    """Create a template sample key file."""
    template = """sample_id\tfastq\tcondition\treplicate
Dam_only_rep1\t/path/to/Dam_only_rep1.fastq.gz\tdam\t1
Dam_LaminB_rep1\t/path/to/Dam_LaminB_rep1.fastq.gz\tfusion\t1
Dam_only_rep2\t/path/to/Dam_only_rep2.fastq.gz\tdam\t2
Dam_LaminB_rep2\t/path/to/Dam_LaminB_rep2.fastq.gz\tfusion\t2
"""
    with open(output_path, 'w') as f:
        f.write(template)

    logger.info(f"Created sample key template: {output_path}")
