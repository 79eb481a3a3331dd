"""
FASTQ reading and writing.

Author: Kevin R. Roy
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Union
import gzip
import logging
import os
import tempfile

from ..core.models import Read
from ..errors import MalformedRecordError

logger = logging.getLogger(__name__)


def _open_text(path: Union[str, Path], mode: str = 'rt'):
    open_func = gzip.open if str(path).endswith('.gz') else open
    return open_func(path, mode)


def read_fastq(path: Union[str, Path]) -> Iterator[Read]:
    """
    Iterate over the reads of a FASTQ file (plain or gzipped).

    Args:
        path: FASTQ file; a '.gz' suffix selects gzip decompression

    Yields:
        Read objects in file order

    Raises:
        MalformedRecordError: On a truncated record, a bad header or
            separator line, or a sequence/quality length mismatch
    """
    path = str(path)
    line_no = 0

    with _open_text(path) as f:
        while True:
            header = f.readline()
            if not header:
                break
            line_no += 1
            start_line = line_no

            header = header.rstrip('\r\n')
            if not header:
                # Tolerate trailing blank lines only
                rest = f.read()
                if rest.strip():
                    raise MalformedRecordError("Blank line inside FASTQ data", path, start_line)
                break
            if not header.startswith('@'):
                raise MalformedRecordError(
                    f"Expected '@' header, got {header[:20]!r}", path, start_line
                )

            lines = []
            for _ in range(3):
                line = f.readline()
                if not line:
                    raise MalformedRecordError(
                        f"Truncated record '{header[1:]}'", path, start_line
                    )
                line_no += 1
                lines.append(line.rstrip('\r\n'))
            seq, plus, qual = lines

            if not plus.startswith('+'):
                raise MalformedRecordError(
                    f"Expected '+' separator, got {plus[:20]!r}", path, start_line + 2
                )
            if len(seq) != len(qual):
                raise MalformedRecordError(
                    f"Sequence and quality lengths differ ({len(seq)} vs {len(qual)}) "
                    f"for read '{header[1:]}'",
                    path, start_line,
                )

            yield Read(read_id=header[1:], sequence=seq, quality=qual)


def write_fastq(reads: Iterable[Read], path: Union[str, Path]) -> int:
    """
    Write reads as FASTQ (gzipped if path ends in '.gz').

    Returns:
        Number of reads written
    """
    n = 0
    with _open_text(path, 'wt') as f:
        for read in reads:
            f.write(read.to_fastq())
            n += 1
    logger.debug(f"Wrote {n} reads to {path}")
    return n


def _suffix(path: Path) -> str:
    if path.suffix == '.gz':
        return ''.join(path.suffixes[-2:])
    return path.suffix or '.tmp'


@contextmanager
def atomic_output(path: Union[str, Path]):
    """
    Yield a temporary sibling path that replaces `path` on success.

    The temporary file keeps the target's suffix so format detection by
    extension still works. On any exception the temporary file is removed
    and the target is left untouched.

    Example:
        >>> with atomic_output('out/sample_inner.fastq') as tmp:
        ...     write_fastq(reads, tmp)
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=_suffix(path), dir=path.parent
    )
    os.close(fd)
    tmp_path = Path(tmp_name)

    try:
        yield tmp_path
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    os.replace(tmp_path, path)
