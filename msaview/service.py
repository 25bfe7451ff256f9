from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

import numpy as np

from .inputs import parse_fasta_alignment
from .model import Alignment, MacromoleculeType, macromolecule_type
from .ordering import Metric, OrderingEngine
from .params import ViewerParams, to_int
from .stats import (
    ColumnStats,
    SequenceMetrics,
    compute_sequence_metrics,
    compute_statistics,
    conservation,
    normalize,
)
from .tracks import select, tick_marks, tick_positions, value_to_hbar, values_barchart
from .viewport import BottomPanePosition, ViewportEngine, ZoomBox, ZoomLevel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SummaryTracks:
    consensus: str
    conservation: str
    entropy: str
    density: str


@dataclass
class ViewerSession:
    token: str
    params: ViewerParams
    name: str
    alignment: Alignment
    stats: ColumnStats
    metrics: SequenceMetrics
    tracks: SummaryTracks
    ordering: OrderingEngine
    viewport: ViewportEngine
    macromolecule: MacromoleculeType
    input_path: Optional[Path] = None
    bottom_pane_position: BottomPanePosition = BottomPanePosition.ADJACENT


@dataclass
class Frame:
    title: str
    zoom_level: ZoomLevel
    metric_label: str
    top_line: int
    leftmost_col: int
    row_indices: List[int]
    seq_indices: List[int]
    col_indices: List[int]
    label_numbers: List[str]
    labels: List[str]
    metric_bars: List[str]
    residue_lines: List[str]
    zoombox: Optional[ZoomBox]
    tick_marks: str
    tick_positions: str
    consensus: str
    conservation: str
    entropy: str
    density: str
    bottom_pane_position: BottomPanePosition = BottomPanePosition.ADJACENT


SESSION_CACHE: Dict[str, ViewerSession] = {}
MAX_SESSIONS = 12


def _trim_cache() -> None:
    while len(SESSION_CACHE) > MAX_SESSIONS:
        first_key = next(iter(SESSION_CACHE))
        del SESSION_CACHE[first_key]


def metric_values(metrics: SequenceMetrics, metric: Metric) -> np.ndarray:
    if metric is Metric.PCT_ID_WRT_CONSENSUS:
        return metrics.pct_id_wrt_consensus.values
    return metrics.relative_seq_len.values


def summary_tracks(stats: ColumnStats) -> SummaryTracks:
    return SummaryTracks(
        consensus=stats.consensus,
        conservation=values_barchart(conservation(stats)),
        entropy=values_barchart(normalize(stats.entropies)),
        density=values_barchart(stats.densities),
    )


def session_from_alignment(
    alignment: Alignment,
    *,
    params: Optional[ViewerParams] = None,
    name: str = "alignment",
    height: Optional[int] = None,
    width: Optional[int] = None,
    input_path: Optional[Path] = None,
) -> ViewerSession:
    params = params or ViewerParams()
    stats = compute_statistics(
        alignment,
        strong_majority=params.strong_majority,
        weak_majority=params.weak_majority,
        gap_placeholder=params.gap_placeholder,
        no_majority_placeholder=params.no_majority_placeholder,
    )
    metrics = compute_sequence_metrics(alignment, stats)
    ordering = OrderingEngine(
        alignment.num_seq,
        lambda metric: metric_values(metrics, metric),
    )
    viewport = ViewportEngine(alignment.num_seq, alignment.aln_len, border=params.pane_border)
    if height is not None and width is not None:
        viewport.resize(height, width)

    token = uuid.uuid4().hex
    session = ViewerSession(
        token=token,
        params=params,
        name=name,
        alignment=alignment,
        stats=stats,
        metrics=metrics,
        tracks=summary_tracks(stats),
        ordering=ordering,
        viewport=viewport,
        macromolecule=macromolecule_type(alignment.sequences),
        input_path=input_path,
    )
    SESSION_CACHE[token] = session
    _trim_cache()
    logger.debug(
        "Prepared session %s for '%s' (%d sequences x %d columns)",
        token,
        name,
        alignment.num_seq,
        alignment.aln_len,
    )
    return session


def prepare_session(
    *,
    input_path: Path,
    params: Optional[ViewerParams] = None,
    height: Optional[int] = None,
    width: Optional[int] = None,
) -> ViewerSession:
    input_path = Path(input_path)
    alignment = parse_fasta_alignment(input_path)
    return session_from_alignment(
        alignment,
        params=params,
        name=input_path.name,
        height=height,
        width=width,
        input_path=input_path,
    )


def session_from_payload(payload: Dict[str, object]) -> ViewerSession:
    input_text = str(payload.get("input_path", "")).strip()
    if not input_text:
        raise ValueError("input_path is required")

    params = ViewerParams.from_payload(payload.get("params") or {})
    height = payload.get("height")
    width = payload.get("width")
    if (height is None) != (width is None):
        raise ValueError("height and width must be given together")
    return prepare_session(
        input_path=Path(input_text),
        params=params,
        height=None if height is None else to_int(height, min_value=0, name="height"),
        width=None if width is None else to_int(width, min_value=0, name="width"),
    )


def get_session(token: str) -> ViewerSession:
    try:
        return SESSION_CACHE[token]
    except KeyError as exc:
        raise ValueError("Unknown or expired session token") from exc


# ****************************************************************
# Input dispatch


def _cycle_zoom_backwards(session: ViewerSession) -> None:
    # Three zoom levels: cycling twice amounts to cycling backwards.
    session.viewport.cycle_zoom()
    session.viewport.cycle_zoom()


def _cycle_bottom_pane_position(session: ViewerSession) -> None:
    session.bottom_pane_position = session.bottom_pane_position.cycle()


ACTIONS: Dict[str, Callable[[ViewerSession], object]] = {
    "scroll_up": lambda s: s.viewport.scroll_up(),
    "scroll_down": lambda s: s.viewport.scroll_down(),
    "scroll_left": lambda s: s.viewport.scroll_left(),
    "scroll_right": lambda s: s.viewport.scroll_right(),
    "scroll_screen_up": lambda s: s.viewport.scroll_screen_up(),
    "scroll_screen_down": lambda s: s.viewport.scroll_screen_down(),
    "scroll_screen_left": lambda s: s.viewport.scroll_screen_left(),
    "scroll_screen_right": lambda s: s.viewport.scroll_screen_right(),
    "jump_to_top": lambda s: s.viewport.jump_to_top(),
    "jump_to_bottom": lambda s: s.viewport.jump_to_bottom(),
    "jump_to_begin": lambda s: s.viewport.jump_to_begin(),
    "jump_to_end": lambda s: s.viewport.jump_to_end(),
    "cycle_zoom": lambda s: s.viewport.cycle_zoom(),
    "cycle_zoom_backwards": _cycle_zoom_backwards,
    "cycle_ordering_criterion": lambda s: s.ordering.cycle_ordering_criterion(),
    "cycle_metric": lambda s: s.ordering.cycle_metric(),
    "cycle_bottom_pane_position": _cycle_bottom_pane_position,
}


def apply_action(session: ViewerSession, action: str) -> None:
    key = str(action).strip().lower()
    try:
        handler = ACTIONS[key]
    except KeyError as exc:
        raise ValueError(f"Unknown action '{action}'") from exc
    handler(session)
    logger.debug("Applied %s to session %s", key, session.token)


def resize_session(session: ViewerSession, height: object, width: object) -> None:
    session.viewport.resize(
        to_int(height, min_value=0, name="height"),
        to_int(width, min_value=0, name="width"),
    )


# ****************************************************************
# Frame composition


def compute_title(session: ViewerSession, shown_seqs: int, shown_cols: int) -> str:
    title = (
        f"{session.name} - {shown_seqs}/{session.alignment.num_seq}s"
        f" x {shown_cols}/{session.alignment.aln_len}c"
    )
    description = session.viewport.zoom_level.describe()
    if description:
        title = f"{title} - {description}"
    return title


def compose_frame(session: ViewerSession) -> Frame:
    viewport = session.viewport
    alignment = session.alignment
    row_indices = viewport.row_indices()
    col_indices = viewport.col_indices()
    ordering = session.ordering.ordering
    seq_indices = [ordering[i] for i in row_indices]
    order_values = session.ordering.order_values()

    number_width = len(str(alignment.num_seq))
    zoomed_out = viewport.zoom_level.is_zoomed_out
    tracks = session.tracks

    return Frame(
        title=compute_title(session, len(row_indices), len(col_indices)),
        zoom_level=viewport.zoom_level,
        metric_label=session.ordering.label(),
        top_line=viewport.top_line,
        leftmost_col=viewport.leftmost_col,
        row_indices=row_indices,
        seq_indices=seq_indices,
        col_indices=col_indices,
        label_numbers=[f"{idx + 1:>{number_width}}" for idx in seq_indices],
        labels=[alignment.headers[idx] for idx in seq_indices],
        metric_bars=[value_to_hbar(order_values[idx]) for idx in seq_indices],
        residue_lines=[select(alignment.sequences[idx], col_indices) for idx in seq_indices],
        zoombox=viewport.zoombox() if zoomed_out else None,
        tick_marks=tick_marks(col_indices, by_position=zoomed_out),
        tick_positions=tick_positions(col_indices, by_position=zoomed_out),
        consensus=select(tracks.consensus, col_indices),
        conservation=select(tracks.conservation, col_indices),
        entropy=select(tracks.entropy, col_indices),
        density=select(tracks.density, col_indices),
        bottom_pane_position=session.bottom_pane_position,
    )


def frame_to_payload(frame: Frame) -> Dict[str, object]:
    zoombox = None
    if frame.zoombox is not None:
        zoombox = {
            "top": frame.zoombox.top,
            "bottom": frame.zoombox.bottom,
            "left": frame.zoombox.left,
            "right": frame.zoombox.right,
            "shape": frame.zoombox.shape.value,
        }
    return {
        "title": frame.title,
        "zoom_level": frame.zoom_level.value,
        "metric_label": frame.metric_label,
        "top_line": frame.top_line,
        "leftmost_col": frame.leftmost_col,
        "row_indices": list(frame.row_indices),
        "seq_indices": list(frame.seq_indices),
        "col_indices": list(frame.col_indices),
        "label_numbers": list(frame.label_numbers),
        "labels": list(frame.labels),
        "metric_bars": list(frame.metric_bars),
        "residue_lines": list(frame.residue_lines),
        "zoombox": zoombox,
        "tick_marks": frame.tick_marks,
        "tick_positions": frame.tick_positions,
        "consensus": frame.consensus,
        "conservation": frame.conservation,
        "entropy": frame.entropy,
        "density": frame.density,
        "bottom_pane_position": frame.bottom_pane_position.value,
    }


def session_info(session: ViewerSession) -> Dict[str, object]:
    viewport = session.viewport
    info: Dict[str, object] = {
        "token": session.token,
        "name": session.name,
        "nb_sequences": session.alignment.num_seq,
        "nb_columns": session.alignment.aln_len,
        "macromolecule": session.macromolecule.value,
        "zoom_level": viewport.zoom_level.value,
        "ordering": session.ordering.criterion.name.lower(),
        "metric": str(session.ordering.metric),
        "top_line": viewport.top_line,
        "leftmost_col": viewport.leftmost_col,
        "pane": None,
    }
    if viewport.is_sized:
        info["pane"] = {
            "height": viewport.pane.height,
            "width": viewport.pane.width,
            "visible_rows": viewport.visible_rows,
            "visible_cols": viewport.visible_cols,
            "fit": viewport.fit().value,
        }
    return info
