"""
Parsers for the supported sequence input formats.

Three formats are accepted: dsa output (.csv), FASTA and plain text with
one sequence per line. Every parser returns a list whose first element is
the root (reference) sequence, followed by the distinct remaining
sequences of the same length in file order. Files may be gzip-compressed.
"""

from __future__ import annotations

import gzip
import logging
from collections.abc import Iterable
from enum import Enum
from pathlib import Path
from typing import IO

from dandelions.core.constants import NUCLEOTIDES
from dandelions.core.exceptions import EmptySequenceSetError, SequenceFileError
from dandelions.core.sequences import make_valid_dna

logger = logging.getLogger(__name__)

DSA_TEMPLATE_MARKER = "#dna template sequence"
DSA_ALIGNMENTS_MARKER = "#Alignments#"

# Tab-separated field holding the nucleotide sequence in dsa alignment rows
DSA_SEQUENCE_FIELD = 3


class InputFormat(str, Enum):
    """Supported sequence input formats."""

    DSA = "dsa"
    FASTA = "fasta"
    TEXT = "text"


FASTA_SUFFIXES = frozenset({".fasta", ".fa", ".fna", ".fas"})
DSA_SUFFIXES = frozenset({".csv"})


def _open_text(path: Path) -> IO[str]:
    if path.suffix == ".gz":
        return gzip.open(path, "rt")
    return path.open()


def _collect(root: str, others: Iterable[str], path: Path) -> list[str]:
    """Root first, then distinct same-length sequences in order of appearance."""
    if not root:
        raise EmptySequenceSetError(str(path))

    kept: dict[str, None] = {}
    n_mismatched = 0
    n_seen = 0
    for seq in others:
        n_seen += 1
        if len(seq) != len(root):
            n_mismatched += 1
            continue
        if seq != root:
            kept.setdefault(seq, None)

    if n_mismatched:
        logger.warning(
            f"Dropped {n_mismatched} sequences from {path.name} whose length "
            f"differs from the root ({len(root)} nt)"
        )
    n_duplicates = n_seen - n_mismatched - len(kept)
    if n_duplicates:
        logger.info(f"Dropped {n_duplicates} duplicate sequences from {path.name}")

    return [root, *kept]


def parse_dsa(path: Path) -> list[str]:
    """Parse dsa output.

    The root is the ``#dna template sequence`` entry. Sequences follow the
    ``#Alignments#`` marker and its header row as pairs of lines (amino
    acids, then nucleotides in the fourth tab-separated field), up to the
    next line starting with ``#``.

    Raises:
        SequenceFileError: If a section is missing or a row is malformed.
    """
    with _open_text(path) as handle:
        lines = iter(enumerate(handle, start=1))

        ancestor = ""
        for _, line in lines:
            if line.startswith(DSA_TEMPLATE_MARKER):
                tokens = line.split("\t")
                ancestor = tokens[1].rstrip().upper() if len(tokens) > 1 else ""
                break
        if not ancestor:
            raise SequenceFileError(str(path), f"could not locate '{DSA_TEMPLATE_MARKER}'")
        if any(c not in NUCLEOTIDES for c in ancestor):
            raise SequenceFileError(
                str(path), "template sequence contains non-ACGT characters"
            )

        found = False
        for _, line in lines:
            if line.startswith(DSA_ALIGNMENTS_MARKER):
                found = True
                next(lines, None)  # header row
                break
        if not found:
            raise SequenceFileError(str(path), f"could not locate '{DSA_ALIGNMENTS_MARKER}'")

        sequences: list[str] = []
        for _, line in lines:
            if line.startswith("#"):
                break
            line_num, line = next(lines, (None, ""))
            tokens = line.split("\t")
            if len(tokens) <= DSA_SEQUENCE_FIELD:
                raise SequenceFileError(str(path), "invalid sequence row", line_num)
            seq, filtered = make_valid_dna(tokens[DSA_SEQUENCE_FIELD].rstrip())
            if filtered:
                raise SequenceFileError(
                    str(path), "sequence contains non-ACGT characters", line_num
                )
            sequences.append(seq)

    return _collect(ancestor, sequences, path)


def parse_fasta(path: Path) -> list[str]:
    """Parse a FASTA file; the first record is the root."""
    from Bio import SeqIO

    with _open_text(path) as handle:
        try:
            records = [make_valid_dna(str(rec.seq))[0] for rec in SeqIO.parse(handle, "fasta")]
        except ValueError as e:
            raise SequenceFileError(str(path), str(e)) from e

    if not records:
        raise EmptySequenceSetError(str(path))
    return _collect(records[0], records[1:], path)


def parse_text(path: Path) -> list[str]:
    """Parse plain text with one sequence per line; the first is the root."""
    with _open_text(path) as handle:
        records = [make_valid_dna(line)[0] for line in handle if line.strip()]

    if not records:
        raise EmptySequenceSetError(str(path))
    return _collect(records[0], records[1:], path)


def detect_format(path: Path) -> InputFormat:
    """Infer the input format from the file suffix (ignoring .gz)."""
    suffix = Path(path.stem).suffix if path.suffix == ".gz" else path.suffix
    suffix = suffix.lower()
    if suffix in DSA_SUFFIXES:
        return InputFormat.DSA
    if suffix in FASTA_SUFFIXES:
        return InputFormat.FASTA
    return InputFormat.TEXT


_PARSERS = {
    InputFormat.DSA: parse_dsa,
    InputFormat.FASTA: parse_fasta,
    InputFormat.TEXT: parse_text,
}


def load_sequences(path: Path, fmt: InputFormat | str | None = None) -> list[str]:
    """Load sequences with the parser for ``fmt`` (default: from the suffix).

    Raises:
        FileNotFoundError: If the file does not exist.
        SequenceFileError: If the file cannot be parsed.
        EmptySequenceSetError: If no sequences are found.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    fmt = InputFormat(fmt) if fmt is not None else detect_format(path)
    sequences = _PARSERS[fmt](path)
    logger.info(f"Loaded {len(sequences)} sequences from {path.name} ({fmt.value})")
    return sequences
