"""
Search window table for the motif cascade.

Each window describes one offset of the cascade: how much of the adapter
has been consumed, which patterns are searched at each read end, and what
happens to a matching read.

Author: Kevin R. Roy
"""

from dataclasses import dataclass
from enum import Enum
from typing import List


class WindowMode(Enum):
    """How a cascade window treats matching reads."""
    TRIM = 'trim'  # remove the adapter remnant
    SPLIT = 'split'  # remnant+motif searched per end, remnant cut off after match
    DETECT = 'detect'  # bare motif at the edge, nothing removed


@dataclass(frozen=True)
class MotifSearchWindow:
    """
    One cascade iteration.

    Attributes:
        offset: Number of adapter bases already consumed (1-based)
        remnant5: Adapter5 with `offset` leading bases removed
        remnant3: Adapter3 with `offset` trailing bases removed
        motif: Restriction motif
        mode: What to do with matching reads
    """
    offset: int
    remnant5: str
    remnant3: str
    motif: str
    mode: WindowMode

    @property
    def remnant_length(self) -> int:
        return len(self.remnant5)

    @property
    def pattern5(self) -> str:
        """Pattern anchored at the read start."""
        if self.mode == WindowMode.TRIM:
            return self.remnant5
        if self.mode == WindowMode.SPLIT:
            return self.remnant5 + self.motif
        return self.motif

    @property
    def pattern3(self) -> str:
        """Pattern anchored at the read end."""
        if self.mode == WindowMode.TRIM:
            return self.remnant3
        if self.mode == WindowMode.SPLIT:
            return self.motif + self.remnant3
        return self.motif

    @property
    def min_overlap(self) -> int:
        return len(self.pattern5)

    @property
    def label(self) -> str:
        """Report label: the 5' remnant followed by the motif."""
        return f"{self.remnant5}{self.motif}"


def build_search_windows(adapter5: str, adapter3: str, motif: str) -> List[MotifSearchWindow]:
    """
    Build the ordered window table for an adapter pair.

    For an adapter of length L, offsets 1..L-2 trim the remnant, offset
    L-1 splits the search into 5' and 3' halves joined to the motif, and
    offset L searches the bare motif. With the 13 bp DamID adapter this
    gives 11 trimming windows, then windows 12 and 13.

    Args:
        adapter5: 5' adapter sequence
        adapter3: 3' adapter sequence (same length as adapter5)
        motif: Restriction motif

    Returns:
        Windows ordered by increasing offset

    Raises:
        ValueError: If the adapters differ in length or are too short
    """
    length = len(adapter5)
    if len(adapter3) != length:
        raise ValueError(
            f"Adapters must have equal length: {length} vs {len(adapter3)}"
        )
    if length < 3:
        raise ValueError(f"Adapter too short for a cascade: {length} bp")
    if not motif:
        raise ValueError("Motif must not be empty")

    windows = []
    for offset in range(1, length + 1):
        if offset <= length - 2:
            mode = WindowMode.TRIM
        elif offset == length - 1:
            mode = WindowMode.SPLIT
        else:
            mode = WindowMode.DETECT

        windows.append(MotifSearchWindow(
            offset=offset,
            remnant5=adapter5[offset:],
            remnant3=adapter3[:length - offset],
            motif=motif,
            mode=mode,
        ))

    return windows
