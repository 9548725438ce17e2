"""
Codon-constrained amino acid alignment and mutation tallying.

Aligns two nucleotide sequences from a multiple sequence alignment at the
amino acid level. Two codons may only be matched when their nucleotides
overlap in the gap-inclusive alignment coordinates, so for ungapped input
of equal length the result reduces to the two translations with no gaps.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from dandelions.core.constants import DEFAULT_GAP_PENALTY, GAP, ROOT_COLOR
from dandelions.core.sequences import translate

logger = logging.getLogger(__name__)

# Trace moves
_MATCH = "m"
_GAP_IN_A = "a"
_GAP_IN_B = "b"


def find_codon_boundaries(seq: str) -> list[tuple[int, int]]:
    """Offset and span of every group of three non-gap characters.

    Gaps are skipped when counting but included in the span, so a codon
    interrupted by gaps covers more than three positions.

    Example:
        >>> find_codon_boundaries("AC-GTTA")
        [(0, 4), (4, 3)]
    """
    result: list[tuple[int, int]] = []
    count = 0
    lo = 0
    for i, c in enumerate(seq):
        if c == GAP:
            continue
        count += 1
        if count == 1:
            lo = i
        elif count == 3:
            result.append((lo, i - lo + 1))
            count = 0
    return result


def _overlap(a: tuple[int, int], b: tuple[int, int]) -> tuple[int, int] | None:
    lo = max(a[0], b[0])
    hi = min(a[0] + a[1], b[0] + b[1])
    if lo < hi:
        return lo, hi
    return None


def _match_scores(
    seq_a: str,
    seq_b: str,
    codons_a: list[tuple[int, int]],
    codons_b: list[tuple[int, int]],
) -> np.ndarray:
    """Identical non-gap nucleotides in each overlapping codon pair, else -inf."""
    scores = np.full((len(codons_a), len(codons_b)), -np.inf)
    for i, ca in enumerate(codons_a):
        for j, cb in enumerate(codons_b):
            overlap = _overlap(ca, cb)
            if overlap is None:
                continue
            lo, hi = overlap
            scores[i, j] = sum(
                1 for k in range(lo, hi) if seq_a[k] == seq_b[k] and seq_a[k] != GAP
            )
    return scores


def _residue(seq: str, codon: tuple[int, int]) -> str:
    offset, span = codon
    return translate(seq[offset : offset + span])[0]


def constrained_nw_align(
    seq_a: str,
    seq_b: str,
    gap_penalty: float = DEFAULT_GAP_PENALTY,
) -> tuple[str, str]:
    """Needleman-Wunsch alignment of codons with overlap-constrained scoring.

    Args:
        seq_a: Top (reference) nucleotide sequence, possibly gapped.
        seq_b: Bottom nucleotide sequence from the same alignment.
        gap_penalty: Linear gap penalty. Gaps reaching the final row or
            column are free, as are leading gaps.

    Returns:
        Tuple of aligned amino acid strings (top, bottom) of equal length.
    """
    codons_a = find_codon_boundaries(seq_a)
    codons_b = find_codon_boundaries(seq_b)
    na, nb = len(codons_a), len(codons_b)
    match = _match_scores(seq_a, seq_b, codons_a, codons_b)

    score = np.zeros((na + 1, nb + 1))
    move = np.full((na + 1, nb + 1), "", dtype="<U1")
    move[1:, 0] = _GAP_IN_B
    move[0, 1:] = _GAP_IN_A

    for i in range(1, na + 1):
        b_gap = gap_penalty if i != na else 0.0
        for j in range(1, nb + 1):
            a_gap = gap_penalty if j != nb else 0.0
            # Ties keep the earlier option: match, then gap in a, then gap in b
            best_mv = _MATCH
            best = score[i - 1, j - 1] + match[i - 1, j - 1]
            s = score[i, j - 1] - a_gap
            if s > best:
                best_mv, best = _GAP_IN_A, s
            s = score[i - 1, j] - b_gap
            if s > best:
                best_mv, best = _GAP_IN_B, s
            score[i, j] = best
            move[i, j] = best_mv

    top: list[str] = []
    btm: list[str] = []
    i, j = na, nb
    while True:
        mv = move[i, j]
        if mv == _MATCH:
            top.append(_residue(seq_a, codons_a[i - 1]))
            btm.append(_residue(seq_b, codons_b[j - 1]))
            i -= 1
            j -= 1
        elif mv == _GAP_IN_A:
            top.append(GAP)
            btm.append(_residue(seq_b, codons_b[j - 1]))
            j -= 1
        elif mv == _GAP_IN_B:
            top.append(_residue(seq_a, codons_a[i - 1]))
            btm.append(GAP)
            i -= 1
        else:
            break

    return "".join(reversed(top)), "".join(reversed(btm))


@dataclass
class _Mutation:
    kind: str  # '+', '-' or '' for substitution
    pos: int
    top: str
    btm: str
    end: int = -1  # position of the last event in a merged run

    def __post_init__(self) -> None:
        if self.end < 0:
            self.end = self.pos

    def merges_with(self, nxt: _Mutation) -> bool:
        if not self.kind or self.kind != nxt.kind:
            return False
        if self.kind == "+" and nxt.pos == self.end:
            return True
        return nxt.pos == self.end + 1

    def extend(self, nxt: _Mutation) -> None:
        self.top += nxt.top
        self.btm += nxt.btm
        self.end = nxt.pos

    def render(self) -> str:
        if self.kind == "+":
            return f"+{self.pos + 1}{self.btm}"
        if self.kind == "-":
            return f"-{self.pos + 1}{self.top}"
        return f"{self.top}{self.pos + 1}{self.btm}"


def tally_alignment_mutations(top: str, btm: str) -> list[str]:
    """Describe the differences of ``btm`` relative to ``top``.

    Positions are 1-based in top (reference) coordinates. Adjacent
    deletions merge into one token, as do consecutive insertions;
    substitutions are always listed individually.

    Returns:
        Tokens ordered by position: ``+<pos><res>`` for insertions,
        ``-<pos><res>`` for deletions and ``<from><pos><to>`` for
        substitutions.

    Example:
        >>> tally_alignment_mutations("MKV-L", "MRV--")
        ['K2R', '-4L']
    """
    if len(top) != len(btm):
        raise ValueError(f"Aligned sequences differ in length ({len(top)} vs {len(btm)})")

    muts: list[_Mutation] = []
    j = 0
    for t, b in zip(top, btm):
        if t == GAP and b != GAP:
            muts.append(_Mutation("+", j, "", b))
        elif t != GAP and b == GAP:
            muts.append(_Mutation("-", j, t, ""))
        elif t != b:
            muts.append(_Mutation("", j, t, b))
        if t != GAP:
            j += 1

    merged: list[_Mutation] = []
    for m in muts:
        if merged and merged[-1].merges_with(m):
            merged[-1].extend(m)
        else:
            merged.append(m)

    return [m.render() for m in merged]


def format_mutations(tokens: Sequence[str]) -> str:
    """Join mutation tokens into a compact comma-separated description."""
    return ",".join(tokens)


# =============================================================================
# Mutation table
# =============================================================================

MUTATION_TABLE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8" />
<style type="text/css">
    table.mutations {{
        font-family: Arial, Helvetica, sans-serif;
        font-weight: bold;
        font-size: 9pt;
        margin: 1px;
        padding: 0;
        background-color: #ffffff;
    }}
    table.mutations th {{
        text-align: center;
        vertical-align: bottom;
        width: 1em;
        padding: 0;
    }}
    table.mutations th span {{
        writing-mode: vertical-rl;
        transform: scale(-1);
    }}
    table.mutations td {{
        text-align: center;
        padding: 0;
    }}
</style>
</head>
<body>
<div>{ancestor}</div>
<table class="mutations">
{rows}
</table>
</body>
</html>
"""


class MutationTable:
    """Positions where any sequence differs from the first.

    The first sequence is the wild type reference. Each row lists the
    residue at every differing position, with '.' where a sequence matches
    the reference.
    """

    def __init__(self, sequences: Sequence[str]):
        self.ancestor = sequences[0] if sequences else ""
        self.positions: list[int] = []
        self.rows: list[str] = []

        if not sequences:
            return

        anc = self.ancestor
        for seq in sequences[1:]:
            if len(seq) != len(anc):
                raise ValueError("Mutation table sequences must have equal length")

        self.positions = [
            i for i in range(len(anc)) if any(seq[i] != anc[i] for seq in sequences[1:])
        ]
        self.rows.append("".join(anc[p] for p in self.positions))
        for seq in sequences[1:]:
            self.rows.append("".join(seq[p] if seq[p] != anc[p] else "." for p in self.positions))

    def to_html(self, colors: Sequence[str] | None = None) -> str:
        """Render the table as a standalone HTML document.

        Args:
            colors: One hex color per row; defaults to black.
        """
        if colors is None:
            colors = [ROOT_COLOR] * len(self.rows)
        if len(colors) != len(self.rows):
            raise ValueError(f"Expected {len(self.rows)} colors, got {len(colors)}")

        header = "<tr><th></th>" + "".join(
            f"<th><span>{p + 1}</span></th>" for p in self.positions
        )
        lines = [header + "</tr>"]
        for j, (row, color) in enumerate(zip(self.rows, colors)):
            label = str(j) if j else ""
            cells = "".join(f"<td>{c}</td>" for c in row)
            lines.append(f'<tr style="color:{color}"><th>{label}</th>{cells}</tr>')

        return MUTATION_TABLE_TEMPLATE.format(ancestor=self.ancestor, rows="\n".join(lines))
