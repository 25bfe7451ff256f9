"""Scroll position, zoom levels and down-sampling for the alignment pane.

The engine only deals in indices: which rows and columns of the alignment
are shown, and where the zoombox sits on a zoomed-out view. It never draws.

Coordinates:
    N, L            number of sequences, alignment length
    visible_rows    pane height minus borders (0 if the pane is too small)
    visible_cols    pane width minus borders (idem)
    top_line        first shown row, in [0, max_top_line]
    leftmost_col    first shown column, in [0, max_leftmost_col]
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from .params import DEFAULT_PANE_BORDER

logger = logging.getLogger(__name__)


class ViewportError(RuntimeError):
    pass


class UnsizedPaneError(ViewportError):
    pass


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def every_nth(total: int, count: int) -> List[int]:
    """Pick ``count`` indices out of ``range(total)``, as evenly spaced as possible.

    The first (0) and last (total - 1) indices are always included. If
    ``count >= total``, all indices are returned.

    >>> every_nth(10, 3)
    [0, 5, 9]
    """
    if count >= total:
        return list(range(total))
    if count <= 0:
        return []
    if count == 1:
        return [0]
    step = (total - 1) / (count - 1)
    return [round_half_up(i * step) for i in range(count)]


class ZoomLevel(Enum):
    ZOOMED_IN = "zoomed_in"
    ZOOMED_OUT = "zoomed_out"
    ZOOMED_OUT_AR = "zoomed_out_ar"

    def cycle(self) -> "ZoomLevel":
        return _NEXT_ZOOM_LEVEL[self]

    @property
    def is_zoomed_out(self) -> bool:
        return self is not ZoomLevel.ZOOMED_IN

    def describe(self) -> str:
        return _ZOOM_DESCRIPTIONS[self]


_NEXT_ZOOM_LEVEL = {
    ZoomLevel.ZOOMED_IN: ZoomLevel.ZOOMED_OUT,
    ZoomLevel.ZOOMED_OUT: ZoomLevel.ZOOMED_OUT_AR,
    ZoomLevel.ZOOMED_OUT_AR: ZoomLevel.ZOOMED_IN,
}

_ZOOM_DESCRIPTIONS = {
    ZoomLevel.ZOOMED_IN: "",
    ZoomLevel.ZOOMED_OUT: "fully zoomed out",
    ZoomLevel.ZOOMED_OUT_AR: "fully zoomed out, preserving aspect ratio",
}


class BottomPanePosition(Enum):
    ADJACENT = "adjacent"
    SCREEN_BOTTOM = "screen_bottom"

    def cycle(self) -> "BottomPanePosition":
        return _NEXT_BOTTOM_PANE_POSITION[self]


_NEXT_BOTTOM_PANE_POSITION = {
    BottomPanePosition.ADJACENT: BottomPanePosition.SCREEN_BOTTOM,
    BottomPanePosition.SCREEN_BOTTOM: BottomPanePosition.ADJACENT,
}


class AlnFit(Enum):
    """How the alignment compares to the pane's capacity."""

    FITS = "fits"
    TOO_TALL = "too_tall"
    TOO_WIDE = "too_wide"
    TOO_TALL_AND_WIDE = "too_tall_and_wide"

    @classmethod
    def classify(cls, too_tall: bool, too_wide: bool) -> "AlnFit":
        if too_tall and too_wide:
            return cls.TOO_TALL_AND_WIDE
        if too_tall:
            return cls.TOO_TALL
        if too_wide:
            return cls.TOO_WIDE
        return cls.FITS

    @property
    def is_too_tall(self) -> bool:
        return self in (AlnFit.TOO_TALL, AlnFit.TOO_TALL_AND_WIDE)

    @property
    def is_too_wide(self) -> bool:
        return self in (AlnFit.TOO_WIDE, AlnFit.TOO_TALL_AND_WIDE)


@dataclass(frozen=True)
class Unsized:
    """Content is loaded but no pane geometry has been supplied yet."""


@dataclass(frozen=True)
class Sized:
    height: int
    width: int


PaneState = Union[Unsized, Sized]
UNSIZED = Unsized()


class ZoomBoxShape(Enum):
    POINT = "point"
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    RECTANGLE = "rectangle"


@dataclass(frozen=True)
class ZoomBox:
    # Half-open row/column spans on the down-sampled pane.
    top: int
    bottom: int
    left: int
    right: int

    @property
    def height(self) -> int:
        return self.bottom - self.top

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def shape(self) -> ZoomBoxShape:
        if self.height < 2:
            if self.width < 2:
                return ZoomBoxShape.POINT
            return ZoomBoxShape.HORIZONTAL
        if self.width < 2:
            return ZoomBoxShape.VERTICAL
        return ZoomBoxShape.RECTANGLE


def _check_dimension(value: int, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer")
    if value < 0:
        raise ValueError(f"{name} must be >= 0")
    return value


class ViewportEngine:
    def __init__(self, num_seq: int, aln_len: int, *, border: int = DEFAULT_PANE_BORDER) -> None:
        self.num_seq = _check_dimension(num_seq, "num_seq")
        self.aln_len = _check_dimension(aln_len, "aln_len")
        self.border = _check_dimension(border, "border")
        self.top_line = 0
        self.leftmost_col = 0
        self.zoom_level = ZoomLevel.ZOOMED_IN
        self.pane: PaneState = UNSIZED

    # ****************************************************************
    # Dimensions

    @property
    def is_sized(self) -> bool:
        return isinstance(self.pane, Sized)

    def _sized_pane(self) -> Sized:
        if isinstance(self.pane, Sized):
            return self.pane
        raise UnsizedPaneError("Pane geometry is not known yet; call resize() first")

    def _capacity(self, cells: int) -> int:
        # Not enough room for the borders: show nothing rather than fail.
        if cells >= self.border:
            return cells - self.border
        return 0

    @property
    def visible_rows(self) -> int:
        return self._capacity(self._sized_pane().height)

    @property
    def visible_cols(self) -> int:
        return self._capacity(self._sized_pane().width)

    @property
    def max_top_line(self) -> int:
        return max(0, self.num_seq - self.visible_rows)

    @property
    def max_leftmost_col(self) -> int:
        return max(0, self.aln_len - self.visible_cols)

    def fit(self) -> AlnFit:
        return AlnFit.classify(
            too_tall=self.num_seq > self.visible_rows,
            too_wide=self.aln_len > self.visible_cols,
        )

    # ****************************************************************
    # Ratios

    @property
    def h_ratio(self) -> float:
        if self.aln_len == 0:
            return 0.0
        return self.visible_cols / self.aln_len

    @property
    def v_ratio(self) -> float:
        if self.num_seq == 0:
            return 0.0
        return self.visible_rows / self.num_seq

    def common_ratio(self) -> float:
        """Single ratio for both axes (ZOOMED_OUT_AR).

        Usually the smaller of the two ratios, but the larger one is used
        whenever the resulting number of rows and columns still fits the
        pane, since it shows more of the alignment.
        """
        h_ratio = self.h_ratio
        v_ratio = self.v_ratio
        min_ratio = min(h_ratio, v_ratio)
        max_ratio = max(h_ratio, v_ratio)
        max_r_cols = round_half_up(self.aln_len * max_ratio)
        max_r_seqs = round_half_up(self.num_seq * max_ratio)
        logger.debug(
            "h_r: %.2f, v_r: %.2f; max ratio (%.2f): %d seqs x %d cols; pane: %d seqs x %d cols",
            h_ratio,
            v_ratio,
            max_ratio,
            max_r_seqs,
            max_r_cols,
            self.visible_rows,
            self.visible_cols,
        )
        if max_r_cols <= self.visible_cols and max_r_seqs <= self.visible_rows:
            return max_ratio
        return min_ratio

    def active_ratios(self) -> Tuple[float, float]:
        """(vertical, horizontal) ratios for the current zoom level."""
        if self.zoom_level is ZoomLevel.ZOOMED_OUT:
            return self.v_ratio, self.h_ratio
        if self.zoom_level is ZoomLevel.ZOOMED_OUT_AR:
            ratio = self.common_ratio()
            return ratio, ratio
        return 1.0, 1.0

    # ****************************************************************
    # Shown rows and columns

    def row_indices(self) -> List[int]:
        """Positions (in display order) of the rows shown in the pane."""
        if self.zoom_level is ZoomLevel.ZOOMED_IN:
            bottom = min(self.top_line + self.visible_rows, self.num_seq)
            return list(range(self.top_line, bottom))
        if self.zoom_level is ZoomLevel.ZOOMED_OUT:
            return every_nth(self.num_seq, self.visible_rows)
        retained = min(round_half_up(self.num_seq * self.common_ratio()), self.visible_rows)
        logger.debug("Retaining %d of %d sequences", retained, self.num_seq)
        return every_nth(self.num_seq, retained)

    def col_indices(self) -> List[int]:
        """Alignment columns shown in the pane."""
        if self.zoom_level is ZoomLevel.ZOOMED_IN:
            right = min(self.leftmost_col + self.visible_cols, self.aln_len)
            return list(range(self.leftmost_col, right))
        if self.zoom_level is ZoomLevel.ZOOMED_OUT:
            return every_nth(self.aln_len, self.visible_cols)
        retained = min(round_half_up(self.aln_len * self.common_ratio()), self.visible_cols)
        logger.debug("Retaining %d of %d columns", retained, self.aln_len)
        return every_nth(self.aln_len, retained)

    def zoombox(self) -> Optional[ZoomBox]:
        """Where the full-resolution viewport falls on the zoomed-out view.

        Returns None when the down-sampled pane has no rows or no columns.
        """
        if self.zoom_level is ZoomLevel.ZOOMED_IN:
            raise ViewportError("zoombox() is only meaningful in a zoomed-out mode")
        shown_rows = len(self.row_indices())
        shown_cols = len(self.col_indices())
        if shown_rows == 0 or shown_cols == 0:
            return None

        v_ratio, h_ratio = self.active_ratios()
        top = math.floor(self.top_line * v_ratio)
        bottom = min(round_half_up((self.top_line + self.visible_rows) * v_ratio), self.num_seq)
        left = math.floor(self.leftmost_col * h_ratio)
        right = min(round_half_up((self.leftmost_col + self.visible_cols) * h_ratio), self.aln_len)

        # Rounding can leave the AR view smaller than nominal; in ZOOMED_OUT
        # these are no-ops.
        bottom = min(bottom, shown_rows)
        right = min(right, shown_cols)

        bottom = max(bottom, 1)
        right = max(right, 1)
        top = min(top, bottom - 1)
        left = min(left, right - 1)
        return ZoomBox(top=top, bottom=bottom, left=left, right=right)

    # ****************************************************************
    # Mutations

    def resize(self, height: int, width: int) -> None:
        self.pane = Sized(
            height=_check_dimension(height, "height"),
            width=_check_dimension(width, "width"),
        )
        self.top_line = min(self.top_line, self.max_top_line)
        self.leftmost_col = min(self.leftmost_col, self.max_leftmost_col)
        logger.debug(
            "Resized pane to %dx%d: %d rows x %d cols visible",
            height,
            width,
            self.visible_rows,
            self.visible_cols,
        )
        self.assert_invariants()

    def cycle_zoom(self) -> ZoomLevel:
        if self.zoom_level is ZoomLevel.ZOOMED_IN and self.fit() is AlnFit.FITS:
            logger.debug("Alignment fits the pane; staying zoomed in")
        else:
            self.zoom_level = self.zoom_level.cycle()
        self.assert_invariants()
        return self.zoom_level

    def scroll_lines(self, delta: int) -> None:
        self.top_line = min(max(self.top_line + delta, 0), self.max_top_line)
        self.assert_invariants()

    def scroll_cols(self, delta: int) -> None:
        self.leftmost_col = min(max(self.leftmost_col + delta, 0), self.max_leftmost_col)
        self.assert_invariants()

    @staticmethod
    def _zoombox_step(ratio: float) -> int:
        if ratio <= 0.0:
            return 0
        return round_half_up(1.0 / ratio)

    def scroll_line(self, direction: int) -> None:
        """Move one row, or one down-sampled row when zoomed out."""
        if self.zoom_level is ZoomLevel.ZOOMED_IN:
            step = 1
        else:
            step = self._zoombox_step(self.active_ratios()[0])
        self.scroll_lines(_sign(direction) * step)

    def scroll_col(self, direction: int) -> None:
        if self.zoom_level is ZoomLevel.ZOOMED_IN:
            step = 1
        else:
            step = self._zoombox_step(self.active_ratios()[1])
        self.scroll_cols(_sign(direction) * step)

    def scroll_screen_vertical(self, direction: int) -> None:
        self.scroll_lines(_sign(direction) * self.visible_rows)

    def scroll_screen_horizontal(self, direction: int) -> None:
        self.scroll_cols(_sign(direction) * self.visible_cols)

    def scroll_up(self) -> None:
        self.scroll_line(-1)

    def scroll_down(self) -> None:
        self.scroll_line(1)

    def scroll_left(self) -> None:
        self.scroll_col(-1)

    def scroll_right(self) -> None:
        self.scroll_col(1)

    def scroll_screen_up(self) -> None:
        self.scroll_screen_vertical(-1)

    def scroll_screen_down(self) -> None:
        self.scroll_screen_vertical(1)

    def scroll_screen_left(self) -> None:
        self.scroll_screen_horizontal(-1)

    def scroll_screen_right(self) -> None:
        self.scroll_screen_horizontal(1)

    def jump_to_top(self) -> None:
        self._sized_pane()
        self.top_line = 0
        self.assert_invariants()

    def jump_to_bottom(self) -> None:
        self.top_line = self.max_top_line
        self.assert_invariants()

    def jump_to_begin(self) -> None:
        self._sized_pane()
        self.leftmost_col = 0
        self.assert_invariants()

    def jump_to_end(self) -> None:
        self.leftmost_col = self.max_leftmost_col
        self.assert_invariants()

    # ****************************************************************
    # Invariants

    def assert_invariants(self) -> None:
        checks = (
            ("top_line", self.top_line, self.max_top_line, self.visible_rows, self.num_seq),
            ("leftmost_col", self.leftmost_col, self.max_leftmost_col, self.visible_cols, self.aln_len),
        )
        for name, position, max_position, visible, extent in checks:
            if not 0 <= position <= max_position:
                raise AssertionError(f"{name}: 0 <= {position} <= max: {max_position} failed")
            if max_position != 0 and max_position + visible != extent:
                raise AssertionError(
                    f"{name}: max: {max_position} + visible: {visible} == extent: {extent} failed"
                )


def _sign(direction: int) -> int:
    if direction > 0:
        return 1
    if direction < 0:
        return -1
    return 0
