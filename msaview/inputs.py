from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .model import Alignment, FormatError


def _parse_fasta_lines(lines: Iterable[str], source: str) -> List[Tuple[str, str]]:
    records: List[Tuple[str, List[str]]] = []
    current_seq: Optional[List[str]] = None

    for raw_line in lines:
        line = raw_line.strip()
        if not line:
            continue
        if line.startswith(">"):
            current_seq = []
            records.append((line[1:].strip(), current_seq))
        else:
            if current_seq is None:
                raise FormatError(f"{source} must start with a header line beginning with '>'")
            current_seq.append(line)

    if not records:
        raise FormatError(f"{source} does not contain any FASTA records")

    return [(header, "".join(chunks)) for header, chunks in records]


def parse_fasta_text(text: str, name: str = "FASTA input") -> Alignment:
    return Alignment.from_records(_parse_fasta_lines(text.splitlines(), name))


def parse_fasta_alignment(path: Path) -> Alignment:
    path = Path(path)
    with path.open("r", encoding="utf-8") as handle:
        records = _parse_fasta_lines(handle, f"FASTA file '{path.name}'")
    return Alignment.from_records(records)
