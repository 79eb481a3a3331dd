"""
Exception taxonomy for DAMSORT.

All fatal errors abort processing of the current input file only.

Author: Kevin R. Roy
"""

from typing import Optional


class DamsortError(Exception):
    """Base class for DAMSORT errors."""

    pass


class MalformedRecordError(DamsortError):
    """An input record does not form a complete read or alignment unit."""

    def __init__(self, message: str, path: Optional[str] = None, line: Optional[int] = None):
        self.path = path
        self.line = line
        location = ''
        if path is not None:
            location = f"{path}"
            if line is not None:
                location += f":{line}"
            location += ": "
        elif line is not None:
            location = f"line {line}: "
        super().__init__(f"{location}{message}")


class AccountingInvariantError(DamsortError):
    """A derived count went negative or buckets do not sum to the input total."""

    pass


class CollaboratorFailure(DamsortError):
    """The trimmer or aligner reported a failure.

    Attributes:
        stage: Pipeline stage that invoked the collaborator
    """

    def __init__(self, stage: str, message: str):
        self.stage = stage
        super().__init__(f"{stage}: {message}")


class FileProcessingError(DamsortError):
    """Processing of one input file was aborted.

    Attributes:
        stage: Pipeline stage that failed
        path: Input file
        cause: The underlying error
    """

    def __init__(self, stage: str, path: str, cause: Exception):
        self.stage = stage
        self.path = path
        self.cause = cause
        super().__init__(f"{stage} failed on {path}: {cause}")


class EmptyInputWarning(UserWarning):
    """An input file contained zero reads; percentages are undefined."""

    pass
