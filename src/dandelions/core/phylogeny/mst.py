"""
Randomized minimum spanning tree construction.

Prim's algorithm over the packed distance table. Because each key packs
d(child, parent) above d(parent, root), a single integer comparison prefers
the closest parent and, among equally close parents, the one nearest the
root. Trees built this way branch out from the root instead of forming
long chains.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from dandelions.core.constants import DISTANCE_MASK, DISTANCE_SHIFT, MST_UNSET
from dandelions.core.distance import child_distance, encode_sequences
from dandelions.core.phylogeny.ancestral import infer_ancestors as infer_ancestral_sequences

logger = logging.getLogger(__name__)


class _KeySource:
    """Packed keys for (child, parent) pairs.

    Pairs covered by the table are read from it; pairs involving an
    inferred ancestor beyond the table are computed from the sequences.
    """

    def __init__(self, sequences: Sequence[str], dism: np.ndarray):
        self.dism = dism
        self.n_rows, self.n_cols = dism.shape
        self.codes = encode_sequences(sequences) if len(sequences) else None

    def keys(self, children: np.ndarray, parent: int) -> np.ndarray:
        out = np.empty(len(children), dtype=np.uint64)
        inside = children < self.n_rows if parent < self.n_cols else np.zeros(len(children), bool)

        if inside.any():
            out[inside] = self.dism[children[inside], parent]

        outside = ~inside
        if outside.any():
            codes = self.codes
            d_child = np.count_nonzero(codes[children[outside]] != codes[parent], axis=1)
            d_root = int(np.count_nonzero(codes[parent] != codes[0]))
            packed = (d_child.astype(np.uint64) << np.uint64(DISTANCE_SHIFT)) | np.uint64(
                d_root & DISTANCE_MASK
            )
            out[outside] = packed

        return out


def build_mst(
    sequences: Sequence[str],
    dism: np.ndarray,
    *,
    shuffle: bool = False,
    infer_ancestors: bool = False,
    rng: np.random.Generator | None = None,
) -> list[int]:
    """Build a minimum spanning tree rooted at vertex 0.

    Each unattached vertex keeps a best-known (parent, key) record. After a
    vertex is attached, every remaining record is relaxed against it with a
    strict comparison, and the first minimal record in current visitation
    order is attached next.

    Args:
        sequences: Observed sequences. May be empty when ``dism`` covers
            every vertex, e.g. for a table of inverted edge counts.
        dism: Packed key table; ``dism[c, p]`` is the key for attaching c
            to p.
        shuffle: Randomly permute the visitation order of vertices 1..M-1.
        infer_ancestors: Extend the vertex set with inferred ancestral
            sequences before building.
        rng: Random generator, required when ``shuffle`` or
            ``infer_ancestors`` is set.

    Returns:
        Parent array over the extended vertex set (observed vertices first,
        then inferred ancestors); entry 0 is 0.
    """
    if (shuffle or infer_ancestors) and rng is None:
        rng = np.random.default_rng()

    vertices = list(sequences)
    if infer_ancestors and len(sequences) > 1:
        vertices.extend(infer_ancestral_sequences(sequences, dism, rng=rng))

    dim = max(len(vertices), dism.shape[0])
    if dim == 0:
        return []

    source = _KeySource(vertices, dism)

    # Join records in visitation order; position k holds vertex child[k]
    child = np.arange(dim, dtype=np.int64)
    if shuffle:
        rng.shuffle(child[1:])
    parent = np.zeros(dim, dtype=np.int64)
    key = np.full(dim, MST_UNSET, dtype=np.uint64)

    for pivot in range(1, dim):
        last_added = int(child[pivot - 1])
        d = source.keys(child[pivot:], last_added)

        improved = d < key[pivot:]
        key[pivot:][improved] = d[improved]
        parent[pivot:][improved] = last_added

        min_i = pivot + int(np.argmin(key[pivot:]))
        if min_i != pivot:
            for arr in (child, parent, key):
                arr[pivot], arr[min_i] = arr[min_i], arr[pivot]

    tree = [0] * dim
    for c, p in zip(child.tolist(), parent.tolist()):
        tree[c] = p
    return tree


def resolve_real_parents(tree: Sequence[int], n_real: int) -> list[int]:
    """Re-parent each observed vertex onto its nearest observed ancestor.

    Vertices at index ``n_real`` and above are inferred ancestors; they are
    skipped when walking up from a child.
    """
    parents = [0] * n_real
    for c in range(n_real):
        p = tree[c]
        while p >= n_real:
            p = tree[p]
        parents[c] = p
    return parents


def parsimony_score(tree: Sequence[int], dism: np.ndarray) -> int:
    """Sum of child to nearest observed ancestor distances."""
    n = dism.shape[0]
    parents = resolve_real_parents(tree, n)
    return sum(int(child_distance(dism[c, parents[c]])) for c in range(1, n))
