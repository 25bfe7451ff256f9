#!/usr/bin/env python3
"""Command line viewer for multiple sequence alignments.

The tool loads an aligned FASTA file, lays it out in a pane of the requested
size and prints one frame of the viewer as plain text: sequence numbers,
labels and metric bars on the left, residues on the right, and the column
ruler and summary tracks (consensus, conservation, entropy, density) below.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Sequence

from msaview.ordering import Metric, SeqOrdering
from msaview.params import (
    DEFAULT_STRONG_MAJORITY,
    DEFAULT_WEAK_MAJORITY,
    ViewerParams,
)
from msaview.render import plot_statistics
from msaview.service import Frame, ViewerSession, compose_frame, prepare_session, session_info
from msaview.viewport import ZoomLevel

ZOOM_CHOICES: Dict[str, ZoomLevel] = {
    "in": ZoomLevel.ZOOMED_IN,
    "out": ZoomLevel.ZOOMED_OUT,
    "out-ar": ZoomLevel.ZOOMED_OUT_AR,
}

ORDER_CHOICES: Dict[str, SeqOrdering] = {
    "source": SeqOrdering.SOURCE_FILE,
    "asc": SeqOrdering.METRIC_INCR,
    "desc": SeqOrdering.METRIC_DECR,
}

METRIC_CHOICES: Dict[str, Metric] = {
    "identity": Metric.PCT_ID_WRT_CONSENSUS,
    "length": Metric.SEQ_LEN,
}


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Show one frame of a multiple sequence alignment viewer as plain text."
    )
    parser.add_argument("input", type=Path, help="Aligned FASTA file")
    parser.add_argument(
        "--height",
        type=int,
        default=24,
        help="Alignment pane height in character cells, borders included",
    )
    parser.add_argument(
        "--width",
        type=int,
        default=80,
        help="Alignment pane width in character cells, borders included",
    )
    parser.add_argument("--zoom", choices=sorted(ZOOM_CHOICES), default="in", help="Zoom level")
    parser.add_argument(
        "--order",
        choices=sorted(ORDER_CHOICES),
        default="source",
        help="Sequence ordering: source file order, or by metric (ascending/descending)",
    )
    parser.add_argument(
        "--metric",
        choices=sorted(METRIC_CHOICES),
        default="identity",
        help="Metric used for ordering and for the per-sequence bars",
    )
    parser.add_argument("--top", type=int, default=0, help="First shown line (saturates)")
    parser.add_argument("--left", type=int, default=0, help="First shown column (saturates)")
    parser.add_argument(
        "--strong-majority",
        type=float,
        default=DEFAULT_STRONG_MAJORITY,
        help="Residue frequency above which the consensus is an uppercase letter",
    )
    parser.add_argument(
        "--weak-majority",
        type=float,
        default=DEFAULT_WEAK_MAJORITY,
        help="Residue frequency above which the consensus is a lowercase letter",
    )
    parser.add_argument("--info", action="store_true", help="Print alignment information instead of a frame")
    parser.add_argument("--plot", type=Path, default=None, help="Also write a statistics figure (.png, .svg, ...)")
    parser.add_argument("--plot-width", type=float, default=10.0, help="Figure width (inches)")
    parser.add_argument("--plot-height", type=float, default=3.0, help="Figure height (inches)")
    parser.add_argument("--dpi", type=int, default=150, help="Figure resolution in dots per inch")
    parser.add_argument("--debug", action="store_true", help="Log viewport decisions to stderr")
    return parser.parse_args(argv)


def apply_view_options(session: ViewerSession, args: argparse.Namespace) -> None:
    viewport = session.viewport
    viewport.scroll_lines(args.top)
    viewport.scroll_cols(args.left)

    wanted_zoom = ZOOM_CHOICES[args.zoom]
    for _ in range(len(ZoomLevel)):
        if viewport.zoom_level is wanted_zoom:
            break
        viewport.cycle_zoom()
    if viewport.zoom_level is not wanted_zoom:
        logging.getLogger(__name__).warning(
            "Alignment fits the pane; staying at zoom level '%s'", viewport.zoom_level.value
        )

    ordering = session.ordering
    if ordering.metric is not METRIC_CHOICES[args.metric]:
        ordering.cycle_metric()
    while ordering.criterion is not ORDER_CHOICES[args.order]:
        ordering.cycle_ordering_criterion()


def format_info(info: Dict[str, object]) -> str:
    lines = [
        f"name: {info['name']}",
        f"sequences: {info['nb_sequences']}",
        f"columns: {info['nb_columns']}",
        f"type: {info['macromolecule']}",
        f"zoom level: {info['zoom_level']}",
        f"ordering: {info['ordering']} ({info['metric']})",
    ]
    pane = info.get("pane")
    if pane:
        lines.append(
            f"pane: {pane['height']}x{pane['width']} "
            f"({pane['visible_rows']} rows x {pane['visible_cols']} cols visible, {pane['fit']})"
        )
    return "\n".join(lines)


def format_frame(frame: Frame, label_width: int) -> str:
    number_width = max((len(n) for n in frame.label_numbers), default=0)
    bar_width = max((len(b) for b in frame.metric_bars), default=0)
    left_width = number_width + 1 + label_width + 1 + bar_width

    lines: List[str] = [frame.title, f"{frame.metric_label:>{left_width}}"]
    for number, label, bar, residues in zip(
        frame.label_numbers, frame.labels, frame.metric_bars, frame.residue_lines
    ):
        lines.append(f"{number} {label[:label_width]:<{label_width}} {bar} {residues}")

    footer = (
        ("", frame.tick_positions),
        ("", frame.tick_marks),
        ("Consensus", frame.consensus),
        ("Conservation", frame.conservation),
        ("Entropy", frame.entropy),
        ("Density", frame.density),
    )
    for name, track in footer:
        lines.append(f"{name[:left_width]:<{left_width}} {track}")

    if frame.zoombox is not None:
        box = frame.zoombox
        lines.append(
            f"zoombox: rows {box.top}-{box.bottom}, columns {box.left}-{box.right} ({box.shape.value})"
        )
    return "\n".join(line.rstrip() for line in lines)


def main(argv: Sequence[str]) -> int:
    args = parse_args(argv)
    if args.debug:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        params = ViewerParams.from_cli_args(args)
        session = prepare_session(
            input_path=args.input,
            params=params,
            height=args.height,
            width=args.width,
        )
    except Exception as exc:  # pragma: no cover - user input validation
        print(f"Error while loading alignment: {exc}", file=sys.stderr)
        return 1

    try:
        apply_view_options(session, args)
        if args.info:
            print(format_info(session_info(session)))
        else:
            print(format_frame(compose_frame(session), params.label_pane_width))
        if args.plot is not None:
            plot_statistics(session, args.plot)
    except Exception as exc:  # pragma: no cover - runtime safety
        print(f"Error while composing view: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main(sys.argv[1:]))
