"""Per-column and per-sequence statistics of an alignment.

Everything here is computed once, when an alignment is loaded, and the
resulting arrays are flagged read-only so that every frame sees the same
values. The consensus tie-break is explicit: among residues with the same
count, the one with the smallest byte code wins.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from .model import GAP_CHARS, Alignment, is_residue_letter
from .params import (
    DEFAULT_GAP_PLACEHOLDER,
    DEFAULT_NO_MAJORITY_PLACEHOLDER,
    DEFAULT_STRONG_MAJORITY,
    DEFAULT_WEAK_MAJORITY,
    check_majorities,
)

logger = logging.getLogger(__name__)

_GAP_CODES = np.array(sorted(ord(c) for c in GAP_CHARS), dtype=np.uint8)


@dataclass(frozen=True)
class ColumnStats:
    consensus: str
    entropies: np.ndarray
    densities: np.ndarray

    def __len__(self) -> int:
        return len(self.consensus)


@dataclass(frozen=True)
class MetricValues:
    values: np.ndarray

    def value(self, seq_index: int) -> float:
        return float(self.values[seq_index])

    def __len__(self) -> int:
        return int(self.values.shape[0])

    def __getitem__(self, seq_index: int) -> float:
        return self.value(seq_index)


@dataclass(frozen=True)
class SequenceMetrics:
    pct_id_wrt_consensus: MetricValues
    relative_seq_len: MetricValues


def _read_only(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


def _letter_mask(codes: np.ndarray) -> np.ndarray:
    return ((codes >= ord("A")) & (codes <= ord("Z"))) | ((codes >= ord("a")) & (codes <= ord("z")))


def _to_upper(codes: np.ndarray) -> np.ndarray:
    lower = (codes >= ord("a")) & (codes <= ord("z"))
    return np.where(lower, codes - 32, codes).astype(np.uint8)


def residue_matrix(sequences: Sequence[str]) -> np.ndarray:
    """Return the alignment as an (N, L) array of byte codes."""
    encoded = "".join(sequences).encode("ascii")
    return np.frombuffer(encoded, dtype=np.uint8).reshape(len(sequences), -1)


def residue_counts(matrix: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Tally residues per column.

    Returns the sorted distinct byte codes (K,) and their per-column counts
    (K, L). Row order follows the codes, which is what makes the
    consensus tie-break deterministic.
    """
    codes = np.unique(matrix)
    counts = np.stack([(matrix == code).sum(axis=0) for code in codes])
    return codes, counts


def best_residues(codes: np.ndarray, counts: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    # argmax returns the first maximum, i.e. the smallest code among ties.
    best_rows = counts.argmax(axis=0)
    columns = np.arange(counts.shape[1])
    return codes[best_rows], counts[best_rows, columns]


def consensus_char(
    residue: str,
    count: int,
    num_seq: int,
    *,
    strong_majority: float = DEFAULT_STRONG_MAJORITY,
    weak_majority: float = DEFAULT_WEAK_MAJORITY,
    gap_placeholder: str = DEFAULT_GAP_PLACEHOLDER,
    no_majority_placeholder: str = DEFAULT_NO_MAJORITY_PLACEHOLDER,
) -> str:
    rel_freq = count / num_seq
    if rel_freq >= strong_majority:
        return residue
    if rel_freq >= weak_majority:
        return residue.lower() if is_residue_letter(residue) else gap_placeholder
    return no_majority_placeholder


def column_entropies(codes: np.ndarray, counts: np.ndarray) -> np.ndarray:
    """Shannon entropy (nats) of each column, gaps excluded."""
    residue_rows = ~np.isin(codes, _GAP_CODES)
    letter_counts = counts[residue_rows].astype(np.float64)
    totals = letter_counts.sum(axis=0)
    freqs = np.divide(
        letter_counts,
        totals,
        out=np.zeros_like(letter_counts),
        where=totals > 0,
    )
    logs = np.log(freqs, out=np.zeros_like(freqs), where=freqs > 0)
    return 0.0 - (freqs * logs).sum(axis=0)


def column_densities(codes: np.ndarray, counts: np.ndarray, num_seq: int) -> np.ndarray:
    letters = counts[_letter_mask(codes)]
    return letters.sum(axis=0).astype(np.float64) / num_seq


def compute_statistics(
    alignment: Alignment,
    *,
    strong_majority: float = DEFAULT_STRONG_MAJORITY,
    weak_majority: float = DEFAULT_WEAK_MAJORITY,
    gap_placeholder: str = DEFAULT_GAP_PLACEHOLDER,
    no_majority_placeholder: str = DEFAULT_NO_MAJORITY_PLACEHOLDER,
) -> ColumnStats:
    check_majorities(weak_majority, strong_majority)
    matrix = residue_matrix(alignment.sequences)
    codes, counts = residue_counts(matrix)
    best_codes, best_counts = best_residues(codes, counts)
    num_seq = alignment.num_seq

    consensus = "".join(
        consensus_char(
            chr(code),
            int(count),
            num_seq,
            strong_majority=strong_majority,
            weak_majority=weak_majority,
            gap_placeholder=gap_placeholder,
            no_majority_placeholder=no_majority_placeholder,
        )
        for code, count in zip(best_codes.tolist(), best_counts.tolist())
    )
    entropies = column_entropies(codes, counts)
    densities = column_densities(codes, counts, num_seq)
    logger.debug(
        "Computed statistics for %d sequences x %d columns (%d distinct residues)",
        num_seq,
        alignment.aln_len,
        len(codes),
    )
    return ColumnStats(
        consensus=consensus,
        entropies=_read_only(entropies),
        densities=_read_only(densities),
    )


def normalize(values: np.ndarray) -> np.ndarray:
    """Divide by the maximum; an all-zero (or empty) input maps to zeros."""
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        return values.copy()
    peak = float(values.max())
    if peak <= 0.0:
        return np.zeros_like(values)
    return values / peak


def conservation(stats: ColumnStats) -> np.ndarray:
    return stats.densities * (1.0 - normalize(stats.entropies))


def compute_sequence_metrics(alignment: Alignment, stats: ColumnStats) -> SequenceMetrics:
    matrix = residue_matrix(alignment.sequences)
    consensus_codes = np.frombuffer(stats.consensus.encode("ascii"), dtype=np.uint8)

    informative = _letter_mask(consensus_codes)
    informative_count = int(informative.sum())
    if informative_count:
        same = _to_upper(matrix[:, informative]) == _to_upper(consensus_codes[informative])
        pct_id = same.sum(axis=1) / informative_count
    else:
        pct_id = np.zeros(alignment.num_seq)

    ungapped = _letter_mask(matrix).sum(axis=1)
    longest = int(ungapped.max())
    if longest:
        rel_len = ungapped / longest
    else:
        rel_len = np.zeros(alignment.num_seq)

    return SequenceMetrics(
        pct_id_wrt_consensus=MetricValues(_read_only(pct_id.astype(np.float64))),
        relative_seq_len=MetricValues(_read_only(rel_len.astype(np.float64))),
    )
