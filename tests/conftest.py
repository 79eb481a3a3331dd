"""Shared fixtures for DAMSORT tests."""

from pathlib import Path

import pytest

from damsort.core.models import Read
from damsort.integrations.aligners import AlignerResult
from damsort.io.fastq import read_fastq
from damsort.preprocessing.trimming import Anchor, TrimResult


class ExactTrimmer:
    """Error-free stand-in for the cutadapt trimmer.

    Anchored patterns must sit at the read end. Unanchored patterns match a
    full occurrence anywhere, or a partial overlap of at least min_overlap
    bases at their own end of the read.
    """

    def __init__(self):
        self.calls = []

    def trim(self, reads, patterns, min_overlap, error_rate, no_trim=False,
             times=1, read_wildcards=False):
        self.calls.append([str(p) for p in patterns])
        result = TrimResult()
        for read in reads:
            current = read
            matched = False
            for _ in range(times):
                best = None
                for pattern in patterns:
                    hit = self._match(current.sequence, pattern, min_overlap)
                    if hit is not None and (best is None or hit[0] > best[0]):
                        best = hit
                if best is None:
                    break
                matched = True
                if no_trim:
                    break
                _, start, stop = best
                current = current.slice(start, stop)
            if matched:
                result.matched.append(current)
            else:
                result.unmatched.append(read)
        return result

    @staticmethod
    def _match(seq, pattern, min_overlap):
        """Return (length, keep_start, keep_stop) or None."""
        p = pattern.sequence
        if pattern.anchored:
            if pattern.anchor == Anchor.START and seq.startswith(p):
                return len(p), len(p), len(seq)
            if pattern.anchor == Anchor.END and seq.endswith(p):
                return len(p), 0, len(seq) - len(p)
            return None

        pos = seq.find(p)
        if pos >= 0:
            if pattern.anchor == Anchor.START:
                return len(p), pos + len(p), len(seq)
            return len(p), 0, pos

        for overlap in range(len(p) - 1, min_overlap - 1, -1):
            if overlap <= 0 or overlap > len(seq):
                continue
            if pattern.anchor == Anchor.START and seq.startswith(p[-overlap:]):
                return overlap, overlap, len(seq)
            if pattern.anchor == Anchor.END and seq.endswith(p[:overlap]):
                return overlap, 0, len(seq) - overlap
        return None


class FakeAligner:
    """Writes one uniquely mapped SAM record per input read."""

    def __init__(self, fail=False, mapq=30):
        self.fail = fail
        self.mapq = mapq
        self.calls = []

    def align(self, fastq, output_sam):
        self.calls.append(Path(fastq))
        if self.fail:
            return AlignerResult(
                aligner='fake', output_path=Path(output_sam), success=False,
                error_message='index not found',
            )

        lines = ["@HD\tVN:1.0\tSO:unsorted", "@SQ\tSN:chr2L\tLN:100000"]
        for i, read in enumerate(read_fastq(fastq)):
            lines.append(
                f"{read.read_id}\t0\tchr2L\t{100 + i}\t{self.mapq}\t{len(read)}M\t*\t0\t0\t"
                f"{read.sequence}\t{read.quality}"
            )
        Path(output_sam).write_text('\n'.join(lines) + '\n')
        return AlignerResult(
            aligner='fake', output_path=Path(output_sam), success=True, log='fake log',
        )


def make_read(read_id, sequence, quality=None):
    return Read(read_id=read_id, sequence=sequence, quality=quality or 'I' * len(sequence))


def write_fastq_text(path, records):
    """Write (read_id, sequence) pairs as FASTQ."""
    with open(path, 'w') as f:
        for read_id, seq in records:
            f.write(f"@{read_id}\n{seq}\n+\n{'I' * len(seq)}\n")
    return path


@pytest.fixture
def exact_trimmer():
    return ExactTrimmer()


@pytest.fixture
def fake_aligner():
    return FakeAligner()
