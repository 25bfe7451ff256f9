from __future__ import annotations

import logging
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import TYPE_CHECKING, Optional

import numpy as np

from .mpl_backend import configure_headless_matplotlib
from .stats import conservation, normalize

if TYPE_CHECKING:
    from .service import ViewerSession

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("png", "svg")


def plot_statistics(
    session: "ViewerSession",
    output: Path,
    *,
    width: Optional[float] = None,
    height: Optional[float] = None,
    dpi: Optional[int] = None,
) -> None:
    """Conservation bars over entropy and density curves, one x position per column.

    When the pane is sized, the columns of the full-resolution viewport are
    shaded so the plot can be read against what the viewer shows.
    """
    configure_headless_matplotlib()
    import matplotlib.pyplot as plt

    params = session.params
    stats = session.stats
    aln_len = session.alignment.aln_len
    positions = np.arange(1, aln_len + 1)

    fig, (ax_cons, ax_curves) = plt.subplots(
        2,
        1,
        figsize=(width or params.plot_width, height or params.plot_height),
        dpi=dpi or params.dpi,
        sharex=True,
    )
    ax_cons.bar(positions, conservation(stats), width=1.0, color="#377eb8", linewidth=0)
    ax_cons.set_ylim(0.0, 1.0)
    ax_cons.set_ylabel("conservation")
    ax_cons.set_title(session.name)

    ax_curves.plot(positions, normalize(stats.entropies), color="#e41a1c", linewidth=1.0, label="entropy")
    ax_curves.plot(positions, stats.densities, color="#4daf4a", linewidth=1.0, label="density")
    ax_curves.set_ylim(0.0, 1.05)
    ax_curves.set_xlim(0.5, aln_len + 0.5)
    ax_curves.set_xlabel("column")
    ax_curves.legend(loc="upper right", fontsize="small")

    viewport = session.viewport
    if viewport.is_sized and viewport.visible_cols > 0:
        span_start = viewport.leftmost_col + 0.5
        span_end = min(viewport.leftmost_col + viewport.visible_cols, aln_len) + 0.5
        for ax in (ax_cons, ax_curves):
            ax.axvspan(span_start, span_end, color="#f0f0f0", alpha=0.7, zorder=0)

    fig.savefig(output, bbox_inches="tight")
    plt.close(fig)
    logger.info("Wrote statistics plot for '%s' to %s", session.name, output)


def render_bytes(session: "ViewerSession", fmt: str = "png") -> bytes:
    fmt = str(fmt).strip().lower()
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported plot format '{fmt}' (expected one of: {', '.join(EXPORT_FORMATS)})")
    with NamedTemporaryFile(suffix=f".{fmt}", delete=True) as handle:
        plot_statistics(session, Path(handle.name))
        handle.seek(0)
        return handle.read()
