"""
Nucleotide substitution model inferred from a tree.

Counts parent-to-child base transitions over every edge. Coding and
silent mutations are not distinguished.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np

from dandelions.core.constants import NUCLEOTIDES
from dandelions.core.exceptions import GappedSequenceError
from dandelions.models.tree import Edge

_INDEX = np.full(256, -1, dtype=np.int64)
for _i, _c in enumerate(NUCLEOTIDES):
    _INDEX[ord(_c)] = _i


def _base_indices(seq: str) -> np.ndarray:
    idx = _INDEX[np.frombuffer(seq.encode("ascii"), dtype=np.uint8)]
    bad = np.flatnonzero(idx < 0)
    if bad.size:
        raise GappedSequenceError(seq[int(bad[0])])
    return idx


def infer_markov_model(sequences: Sequence[str], edges: Iterable[Edge]) -> np.ndarray:
    """Infer a 4x4 substitution matrix from the edges of a tree.

    Rows and columns are ordered A, C, G, T. Entry ``[r, c]`` is the
    probability that parent base c becomes child base r, so each COLUMN sums
    to 1. A parent base that never occurs maps to itself with probability 1.

    Args:
        sequences: Ungapped sequences indexed by edge endpoints.
        edges: Tree edges.

    Returns:
        float64 array of shape (4, 4).

    Raises:
        GappedSequenceError: If any sequence on an edge contains a character
            other than A, C, G or T.
    """
    n = len(NUCLEOTIDES)
    counts = np.zeros((n, n), dtype=np.float64)

    for edge in edges:
        cols = _base_indices(sequences[edge.parent])
        rows = _base_indices(sequences[edge.child])
        np.add.at(counts, (rows, cols), 1.0)

    col_sums = counts.sum(axis=0)
    model = np.zeros_like(counts)
    for c in range(n):
        if col_sums[c] == 0.0:
            model[c, c] = 1.0
        else:
            model[:, c] = counts[:, c] / col_sums[c]
    return model
