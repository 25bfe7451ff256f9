from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)


class SeqOrdering(Enum):
    SOURCE_FILE = "-"
    METRIC_INCR = "↑"
    METRIC_DECR = "↓"

    def cycle(self) -> "SeqOrdering":
        return _NEXT_ORDERING[self]

    def __str__(self) -> str:
        return self.value


_NEXT_ORDERING = {
    SeqOrdering.SOURCE_FILE: SeqOrdering.METRIC_INCR,
    SeqOrdering.METRIC_INCR: SeqOrdering.METRIC_DECR,
    SeqOrdering.METRIC_DECR: SeqOrdering.SOURCE_FILE,
}


class Metric(Enum):
    PCT_ID_WRT_CONSENSUS = "%id (cons)"
    SEQ_LEN = "seq len"

    def cycle(self) -> "Metric":
        return _NEXT_METRIC[self]

    def __str__(self) -> str:
        return self.value


_NEXT_METRIC = {
    Metric.PCT_ID_WRT_CONSENSUS: Metric.SEQ_LEN,
    Metric.SEQ_LEN: Metric.PCT_ID_WRT_CONSENSUS,
}


MetricSource = Callable[[Metric], Sequence[float]]


def order(values: Sequence[float]) -> List[int]:
    """Indices of ``values`` sorted by value (stable, ascending).

    Eg [3, -2, 7] -> [1, 0, 2]. Equal values keep their source order.
    """
    numbers = [float(v) for v in values]
    if any(math.isnan(v) for v in numbers):
        raise ValueError("Cannot order sequences by a metric containing NaN values")
    return sorted(range(len(numbers)), key=numbers.__getitem__)


class OrderingEngine:
    def __init__(
        self,
        num_seq: int,
        metric_source: MetricSource,
        *,
        criterion: SeqOrdering = SeqOrdering.SOURCE_FILE,
        metric: Metric = Metric.PCT_ID_WRT_CONSENSUS,
    ) -> None:
        if num_seq < 0:
            raise ValueError("num_seq must be >= 0")
        self.num_seq = num_seq
        self._metric_source = metric_source
        self._criterion = criterion
        self._metric = metric
        self._ordering: Optional[List[int]] = None
        self.recomputations = 0

    @property
    def criterion(self) -> SeqOrdering:
        return self._criterion

    @property
    def metric(self) -> Metric:
        return self._metric

    @property
    def ordering(self) -> List[int]:
        if self._ordering is None:
            self._ordering = self._compute()
        return self._ordering

    def order_values(self) -> Sequence[float]:
        values = self._metric_source(self._metric)
        if len(values) != self.num_seq:
            raise ValueError(
                f"Metric '{self._metric}' supplied {len(values)} values for {self.num_seq} sequences"
            )
        return values

    def label(self) -> str:
        return f"{self._metric} {self._criterion}"

    def cycle_ordering_criterion(self) -> SeqOrdering:
        self._criterion = self._criterion.cycle()
        self._ordering = None
        return self._criterion

    def cycle_metric(self) -> Metric:
        self._metric = self._metric.cycle()
        # Source order does not depend on the metric.
        if self._criterion is not SeqOrdering.SOURCE_FILE:
            self._ordering = None
        return self._metric

    def _compute(self) -> List[int]:
        self.recomputations += 1
        if self._criterion is SeqOrdering.SOURCE_FILE:
            return list(range(self.num_seq))
        ascending = order(self.order_values())
        logger.debug("Recomputed ordering: %s %s", self._metric, self._criterion)
        if self._criterion is SeqOrdering.METRIC_DECR:
            return ascending[::-1]
        return ascending
