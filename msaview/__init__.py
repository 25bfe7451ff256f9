"""Core APIs for browsing multiple sequence alignments in a fixed-size text pane."""

from .model import Alignment, FormatError
from .ordering import Metric, OrderingEngine, SeqOrdering
from .params import ViewerParams
from .service import (
    Frame,
    ViewerSession,
    apply_action,
    compose_frame,
    get_session,
    prepare_session,
    resize_session,
    session_from_alignment,
    session_info,
)
from .stats import compute_sequence_metrics, compute_statistics
from .viewport import ViewportEngine, ZoomLevel

__all__ = [
    "Alignment",
    "FormatError",
    "Frame",
    "Metric",
    "OrderingEngine",
    "SeqOrdering",
    "ViewerParams",
    "ViewerSession",
    "ViewportEngine",
    "ZoomLevel",
    "apply_action",
    "compose_frame",
    "compute_sequence_metrics",
    "compute_statistics",
    "get_session",
    "prepare_session",
    "resize_session",
    "session_from_alignment",
    "session_info",
]
