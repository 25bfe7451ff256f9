from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence, Tuple

GAP_CHARS = frozenset("-.")
NUCLEOTIDE_CHARS = frozenset("ACGTUN")
NUCLEOTIDE_FRACTION = 0.9


class FormatError(ValueError):
    """Raised when an alignment cannot be loaded as given."""


class MacromoleculeType(Enum):
    NUCLEOTIDE = "nucleotide"
    PROTEIN = "protein"


def is_residue_letter(char: str) -> bool:
    return char.isascii() and char.isalpha()


def is_gap(char: str) -> bool:
    return char in GAP_CHARS


def _check_alphabet(index: int, header: str, sequence: str) -> None:
    for pos, char in enumerate(sequence):
        if not (is_residue_letter(char) or is_gap(char)):
            raise FormatError(
                f"Character {char!r} at column {pos + 1} of sequence {index + 1} "
                f"('{header}') is not a letter or a gap ('-', '.')"
            )


@dataclass(frozen=True)
class Alignment:
    headers: Tuple[str, ...]
    sequences: Tuple[str, ...]

    def __post_init__(self) -> None:
        headers = tuple(str(h) for h in self.headers)
        sequences = tuple(str(s) for s in self.sequences)
        object.__setattr__(self, "headers", headers)
        object.__setattr__(self, "sequences", sequences)

        if not sequences:
            raise FormatError("Alignment must contain at least one sequence")
        if len(headers) != len(sequences):
            raise FormatError(
                f"Alignment has {len(headers)} headers but {len(sequences)} sequences"
            )
        expected = len(sequences[0])
        if expected == 0:
            raise FormatError("Aligned sequences must not be empty")
        for idx, seq in enumerate(sequences):
            if len(seq) != expected:
                raise FormatError(
                    f"Aligned sequences must have the same length (including gap characters): "
                    f"sequence {idx + 1} ('{headers[idx]}') has {len(seq)} columns, expected {expected}"
                )
        for idx, (header, seq) in enumerate(zip(headers, sequences)):
            _check_alphabet(idx, header, seq)

    @classmethod
    def from_records(cls, records: Iterable[Tuple[str, str]]) -> "Alignment":
        pairs = list(records)
        return cls(
            headers=tuple(header for header, _ in pairs),
            sequences=tuple(seq for _, seq in pairs),
        )

    @property
    def num_seq(self) -> int:
        return len(self.sequences)

    @property
    def aln_len(self) -> int:
        return len(self.sequences[0])

    def column(self, col: int) -> str:
        return "".join(seq[col] for seq in self.sequences)


def macromolecule_type(sequences: Sequence[str]) -> MacromoleculeType:
    residues = 0
    nucleotides = 0
    for seq in sequences:
        for char in seq:
            if is_gap(char):
                continue
            residues += 1
            if char.upper() in NUCLEOTIDE_CHARS:
                nucleotides += 1
    if residues and nucleotides / residues >= NUCLEOTIDE_FRACTION:
        return MacromoleculeType.NUCLEOTIDE
    return MacromoleculeType.PROTEIN
