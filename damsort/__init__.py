"""
DAMSORT - DamID Adapter and Motif SORTing.

Author: Kevin R. Roy
"""

__version__ = "0.1.0"
__author__ = "Kevin R. Roy"

from .config import (
    AlignmentConfig,
    CascadeConfig,
    PipelineConfig,
    SampleConfig,
)
from .core.cascade import CascadeResult, MotifCascade
from .core.models import ClassificationBucket, MultiplicityBucket, Read
from .core.multiplicity import MultiplicityClassifier
from .errors import (
    AccountingInvariantError,
    CollaboratorFailure,
    DamsortError,
    EmptyInputWarning,
    FileProcessingError,
    MalformedRecordError,
)

__all__ = [
    "CascadeConfig",
    "AlignmentConfig",
    "SampleConfig",
    "PipelineConfig",
    "Read",
    "ClassificationBucket",
    "MultiplicityBucket",
    "MotifCascade",
    "CascadeResult",
    "MultiplicityClassifier",
    "DamsortError",
    "MalformedRecordError",
    "AccountingInvariantError",
    "CollaboratorFailure",
    "FileProcessingError",
    "EmptyInputWarning",
    "__version__",
]
