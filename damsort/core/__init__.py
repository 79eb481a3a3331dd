"""
Core data models and classifiers for DAMSORT.

The motif cascade lives in `damsort.core.cascade` and is imported from
there directly.

Author: Kevin R. Roy
"""

from .models import (
    AlignmentRecord,
    ClassificationBucket,
    MultiplicityBucket,
    Provenance,
    Read,
)
from .multiplicity import (
    MultiplicityClassifier,
    MultiplicityPartition,
)
from .windows import (
    MotifSearchWindow,
    WindowMode,
    build_search_windows,
)

__all__ = [
    # Models
    'Read',
    'AlignmentRecord',
    'Provenance',
    'ClassificationBucket',
    'MultiplicityBucket',
    # Search windows
    'MotifSearchWindow',
    'WindowMode',
    'build_search_windows',
    # Multiplicity
    'MultiplicityClassifier',
    'MultiplicityPartition',
]
