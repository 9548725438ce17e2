"""
Nucleotide sequence helpers.

Validation, codon translation and Hamming distance shared by the tree
builders, the alignment engine and the network model.
"""

from __future__ import annotations

from Bio.Data import CodonTable

from dandelions.core.constants import GAP, VALID_SYMBOLS
from dandelions.core.exceptions import InvalidNucleotideError


def _standard_codon_table() -> dict[str, str]:
    """Standard genetic code with stop codons translated as '*'."""
    table = CodonTable.unambiguous_dna_by_id[1]
    codons = dict(table.forward_table)
    for stop in table.stop_codons:
        codons[stop] = "*"
    return codons


CODON_TABLE: dict[str, str] = _standard_codon_table()


def make_valid_dna(text: str) -> tuple[str, int]:
    """Casefold text and keep only ACGT and gap characters.

    Args:
        text: Raw sequence text.

    Returns:
        Tuple of (filtered upper-case sequence, number of characters removed).

    Example:
        >>> make_valid_dna("acg tN")
        ('ACGT', 2)
    """
    kept = [c for c in text.upper() if c in VALID_SYMBOLS]
    return "".join(kept), len(text) - len(kept)


def translate(nts: str) -> str:
    """Translate nucleotides to amino acids.

    Gap characters are skipped when forming codons, so an aligned sequence
    translates to the same protein as its ungapped form. A trailing partial
    codon is ignored.

    Args:
        nts: Upper-case nucleotide sequence (may contain gaps).

    Returns:
        Amino acid sequence, stop codons as '*'.

    Raises:
        InvalidNucleotideError: If a codon contains a non-ACGT character.
    """
    aas: list[str] = []
    codon: list[str] = []
    for c in nts:
        if c == GAP:
            continue
        codon.append(c)
        if len(codon) == 3:
            key = "".join(codon)
            try:
                aas.append(CODON_TABLE[key])
            except KeyError:
                raise InvalidNucleotideError(nts) from None
            codon.clear()
    return "".join(aas)


def hamming_distance(a: str, b: str) -> int:
    """Number of positions at which two equal-length sequences differ."""
    return sum(x != y for x, y in zip(a, b))
