from __future__ import annotations

from typing import List, Sequence

import numpy as np

from .viewport import round_half_up

BAR_BLOCKS = " ▁▂▃▄▅▆▇█"
# Block k covers values up to k/9; anything above 8/9 is a full block.
_BAR_THRESHOLDS = np.arange(1, len(BAR_BLOCKS)) / len(BAR_BLOCKS)

HBAR_PARTIALS = ("", "▏", "▎", "▍", "▌", "▋", "▊", "▉")
HBAR_FULL = "█"


def values_barchart(values: Sequence[float]) -> str:
    """One block character per value; values are expected in [0, 1]."""
    levels = np.searchsorted(_BAR_THRESHOLDS, np.asarray(values, dtype=np.float64), side="left")
    return "".join(BAR_BLOCKS[min(int(level), len(BAR_BLOCKS) - 1)] for level in levels)


def value_to_hbar(value: float, cells: int = 2) -> str:
    value = min(max(float(value), 0.0), 1.0)
    steps_per_cell = len(HBAR_PARTIALS)
    eighths = round_half_up(value * cells * steps_per_cell)
    full, remainder = divmod(eighths, steps_per_cell)
    bar = HBAR_FULL * full
    if full < cells:
        bar += HBAR_PARTIALS[remainder]
    return bar.ljust(cells)


def select(track: str, col_indices: Sequence[int]) -> str:
    return "".join(track[j] for j in col_indices)


def _ruler_number(display_pos: int, column: int, by_position: bool) -> int:
    # 1-based, for humans.
    return display_pos + 1 if by_position else column + 1


def tick_marks(
    col_indices: Sequence[int],
    *,
    primary: str = "|",
    secondary: str = ":",
    by_position: bool = False,
) -> str:
    marks: List[str] = []
    for display_pos, column in enumerate(col_indices):
        number = _ruler_number(display_pos, column, by_position)
        if number % 10 == 0:
            marks.append(primary)
        elif number % 5 == 0:
            marks.append(secondary)
        else:
            marks.append(" ")
    return "".join(marks)


def tick_positions(col_indices: Sequence[int], *, by_position: bool = False) -> str:
    """Column numbers, each right-aligned on its tick mark.

    The first shown column is always labelled (left-aligned); labels that
    would overlap the previous one are dropped.
    """
    width = len(col_indices)
    cells = [" "] * width
    last_end = -1
    for display_pos, column in enumerate(col_indices):
        number = _ruler_number(display_pos, column, by_position)
        if display_pos == 0:
            label = str(column + 1)
            start = 0
        elif number % 10 == 0:
            label = str(column + 1)
            start = display_pos - len(label) + 1
        else:
            continue
        if start <= last_end:
            continue
        for offset, char in enumerate(label):
            if start + offset < width:
                cells[start + offset] = char
        last_end = start + len(label) - 1
    return "".join(cells)
