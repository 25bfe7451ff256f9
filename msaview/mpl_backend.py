"""Matplotlib setup for writing statistics figures without a display."""
from __future__ import annotations

import logging
import os
import tempfile

logger = logging.getLogger(__name__)

HEADLESS_BACKEND = "Agg"
CONFIG_DIRNAME = "msaview_mplconfig"


def configure_headless_matplotlib() -> str:
    """Select a non-interactive backend and return the active backend name.

    Safe to call repeatedly, and from Flask worker threads, before or after
    pyplot has been imported.
    """
    if not os.environ.get("MPLBACKEND", "").strip():
        os.environ["MPLBACKEND"] = HEADLESS_BACKEND
    # The default config dir may be unwritable under a service account.
    if not os.environ.get("MPLCONFIGDIR"):
        os.environ["MPLCONFIGDIR"] = os.path.join(tempfile.gettempdir(), CONFIG_DIRNAME)

    import matplotlib

    backend = str(matplotlib.get_backend())
    if "agg" not in backend.lower():
        logger.debug("Switching matplotlib backend from %s to %s", backend, HEADLESS_BACKEND)
        matplotlib.use(HEADLESS_BACKEND, force=True)
        backend = HEADLESS_BACKEND
    return backend
