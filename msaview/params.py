from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

DEFAULT_PANE_BORDER = 2
DEFAULT_STRONG_MAJORITY = 0.8
DEFAULT_WEAK_MAJORITY = 0.2
DEFAULT_GAP_PLACEHOLDER = "-"
DEFAULT_NO_MAJORITY_PLACEHOLDER = "."
DEFAULT_LABEL_PANE_WIDTH = 18


@dataclass(frozen=True)
class ViewerParams:
    pane_border: int = DEFAULT_PANE_BORDER
    strong_majority: float = DEFAULT_STRONG_MAJORITY
    weak_majority: float = DEFAULT_WEAK_MAJORITY
    gap_placeholder: str = DEFAULT_GAP_PLACEHOLDER
    no_majority_placeholder: str = DEFAULT_NO_MAJORITY_PLACEHOLDER
    label_pane_width: int = DEFAULT_LABEL_PANE_WIDTH
    plot_width: float = 10.0
    plot_height: float = 3.0
    dpi: int = 150

    def __post_init__(self) -> None:
        check_majorities(self.weak_majority, self.strong_majority)
        to_placeholder(self.gap_placeholder, name="gap_placeholder")
        to_placeholder(self.no_majority_placeholder, name="no_majority_placeholder")
        if self.pane_border < 0:
            raise ValueError("pane_border must be >= 0")

    @classmethod
    def from_cli_args(cls, args: Any) -> "ViewerParams":
        return cls(
            strong_majority=float(args.strong_majority),
            weak_majority=float(args.weak_majority),
            plot_width=float(args.plot_width),
            plot_height=float(args.plot_height),
            dpi=int(args.dpi),
        )

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "ViewerParams":
        payload = payload or {}

        def require(name: str, default: Any) -> Any:
            return payload.get(name, default)

        return cls(
            pane_border=to_int(require("pane_border", DEFAULT_PANE_BORDER), min_value=0, name="pane_border"),
            strong_majority=to_float(require("strong_majority", DEFAULT_STRONG_MAJORITY), min_value=0.0, max_value=1.0, name="strong_majority"),
            weak_majority=to_float(require("weak_majority", DEFAULT_WEAK_MAJORITY), min_value=0.0, max_value=1.0, name="weak_majority"),
            gap_placeholder=to_placeholder(require("gap_placeholder", DEFAULT_GAP_PLACEHOLDER), name="gap_placeholder"),
            no_majority_placeholder=to_placeholder(require("no_majority_placeholder", DEFAULT_NO_MAJORITY_PLACEHOLDER), name="no_majority_placeholder"),
            label_pane_width=to_int(require("label_pane_width", DEFAULT_LABEL_PANE_WIDTH), min_value=0, name="label_pane_width"),
            plot_width=to_float(require("plot_width", 10.0), positive=True, name="plot_width"),
            plot_height=to_float(require("plot_height", 3.0), positive=True, name="plot_height"),
            dpi=to_int(require("dpi", 150), positive=True, name="dpi"),
        )


def check_majorities(weak: float, strong: float) -> None:
    if not 0.0 <= weak <= strong <= 1.0:
        raise ValueError("majority thresholds must satisfy 0 <= weak_majority <= strong_majority <= 1")


def to_placeholder(value: Any, *, name: str) -> str:
    text = str(value)
    if len(text) != 1 or not text.isascii():
        raise ValueError(f"{name} must be a single ASCII character")
    return text


def to_float(
    value: Any,
    *,
    name: str,
    positive: bool = False,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a floating-point number") from exc
    if positive and parsed <= 0:
        raise ValueError(f"{name} must be positive")
    if min_value is not None and parsed < min_value:
        raise ValueError(f"{name} must be >= {min_value}")
    if max_value is not None and parsed > max_value:
        raise ValueError(f"{name} must be <= {max_value}")
    return parsed


def to_int(
    value: Any,
    *,
    name: str,
    positive: bool = False,
    min_value: Optional[int] = None,
) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if positive and parsed <= 0:
        raise ValueError(f"{name} must be positive")
    if min_value is not None and parsed < min_value:
        raise ValueError(f"{name} must be >= {min_value}")
    return parsed
