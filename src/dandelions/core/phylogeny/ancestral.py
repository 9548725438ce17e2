"""
Ancestral sequence inference.

Builds a binary topology by min-linkage agglomeration over the packed
distance table, then reconstructs ancestral nucleotides with a two-pass
Fitch-style algorithm over per-position ambiguity bitmasks.

The agglomeration joins the globally closest pair of clusters at every
step. There is no Q-criterion correction as in textbook neighbor joining;
the topology is deliberately plain minimum-distance linkage.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from dandelions.core.constants import BIT_ALPHABET
from dandelions.core.exceptions import (
    InvalidNucleotideError,
    NotALeafError,
    RootInvariantError,
    TreeInvariantError,
)

logger = logging.getLogger(__name__)

NO_NODE = -1

# =============================================================================
# Bitmask encoding
#
# Bit i of a mask is set when BIT_ALPHABET[i] is still a possible state.
# =============================================================================

_N_MASKS = 1 << len(BIT_ALPHABET)

_ENCODE = np.zeros(256, dtype=np.uint8)
for _i, _c in enumerate(BIT_ALPHABET):
    _ENCODE[ord(_c)] = 1 << _i

# Number of set bits per mask, and the k-th set bit of each mask
_BIT_COUNT = np.array([bin(m).count("1") for m in range(_N_MASKS)], dtype=np.int64)
_KTH_BIT = np.zeros((_N_MASKS, len(BIT_ALPHABET)), dtype=np.uint8)
for _m in range(_N_MASKS):
    _bits = [1 << b for b in range(len(BIT_ALPHABET)) if _m & (1 << b)]
    _KTH_BIT[_m, : len(_bits)] = _bits

_DECODE = np.full(_N_MASKS, ord("?"), dtype=np.uint8)
for _i, _c in enumerate(BIT_ALPHABET):
    _DECODE[1 << _i] = ord(_c)


def bit_encode(nt: str) -> int:
    """Encode a single nucleotide (or gap) as a one-bit mask."""
    i = BIT_ALPHABET.find(nt)
    if len(nt) != 1 or i < 0:
        raise InvalidNucleotideError(nt)
    return 1 << i


def random_bits(masks: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """Pick one set bit uniformly at random from every mask.

    Args:
        masks: uint8 array of non-zero masks.
        rng: Random generator.

    Returns:
        uint8 array of the same shape holding single-bit masks.
    """
    masks = np.asarray(masks, dtype=np.uint8)
    counts = _BIT_COUNT[masks]
    if np.any(counts == 0):
        raise TreeInvariantError("Cannot resolve an empty ambiguity mask")
    picks = (rng.random(masks.shape) * counts).astype(np.int64)
    return _KTH_BIT[masks, picks]


def bit_decode(mask: int, rng: np.random.Generator) -> str:
    """Decode a mask to a nucleotide, choosing at random among set bits."""
    bit = random_bits(np.array([mask], dtype=np.uint8), rng)[0]
    return chr(_DECODE[bit])


def to_bdna(seq: str) -> np.ndarray:
    """Convert a nucleotide string to a uint8 mask array."""
    codes = np.frombuffer(seq.encode("ascii"), dtype=np.uint8)
    masks = _ENCODE[codes]
    bad = np.flatnonzero(masks == 0)
    if bad.size:
        raise InvalidNucleotideError(seq, position=int(bad[0]))
    return masks


def to_dna(masks: np.ndarray, rng: np.random.Generator) -> str:
    """Convert a mask array back to a string, resolving ambiguity at random."""
    if len(masks) == 0:
        return ""
    return _DECODE[random_bits(masks, rng)].tobytes().decode("ascii")


# =============================================================================
# Topology
# =============================================================================


def construct_nj_tree(
    dism: np.ndarray,
    rng: np.random.Generator | None = None,
) -> list[int]:
    """Build a binary tree by min-linkage agglomeration.

    All pairs (i, j) with i > j are ordered by their packed entry
    ``dism[j, i]``. Pairs are consumed smallest first; if the topmost
    non-root ancestors of i and j differ, both are joined under a new
    internal node.

    Args:
        dism: Square packed distance table.
        rng: When given, pairs with equal distance are visited in random
            order; otherwise in enumeration order.

    Returns:
        Parent array of length 2N-1. Indices < N are leaves, the root is
        index 2N-2 and is its own parent.
    """
    n = dism.shape[0]
    if n != dism.shape[1]:
        raise TreeInvariantError(f"Distance table must be square, got {dism.shape}")
    if n == 0:
        return []

    root_id = 2 * n - 2
    tree = [root_id] * (2 * n - 1)
    if n == 1:
        return tree

    rows, cols = np.tril_indices(n, k=-1)
    dists = dism[cols, rows]

    if rng is not None:
        perm = rng.permutation(len(dists))
        order = perm[np.argsort(dists[perm], kind="stable")]
    else:
        order = np.argsort(dists, kind="stable")

    u = n
    for k in order:
        pa = int(rows[k])
        pb = int(cols[k])

        while tree[pa] != root_id:
            pa = tree[pa]
        while tree[pb] != root_id:
            pb = tree[pb]

        if pa == pb:
            continue

        tree[pa] = u
        tree[pb] = u
        u += 1
        # The final join attaches the last two clusters directly to the root
        if u == root_id + 1:
            break

    return tree


class BinaryTree:
    """Arena-backed binary tree with per-node ambiguity bitmasks.

    Nodes are addressed by index. ``parent``, ``left`` and ``right`` hold
    indices, with -1 meaning no link. ``bseq`` is an (n_nodes x L) uint8
    array; ``labeled`` marks rows that hold a valid mask.
    """

    def __init__(self, n_nodes: int, length: int):
        self.parent = [NO_NODE] * n_nodes
        self.left = [NO_NODE] * n_nodes
        self.right = [NO_NODE] * n_nodes
        self.bseq = np.zeros((n_nodes, length), dtype=np.uint8)
        self.labeled = np.zeros(n_nodes, dtype=bool)

    @classmethod
    def from_parents(cls, parents: Sequence[int], length: int) -> BinaryTree:
        """Build from a parent array where the root is its own parent.

        Raises:
            RootInvariantError: If the result does not have exactly one root.
        """
        tree = cls(len(parents), length)
        for i, p in enumerate(parents):
            if i != p:
                tree.add_child(p, i)

        n_roots = sum(1 for p in tree.parent if p == NO_NODE)
        if n_roots != 1:
            raise RootInvariantError(n_roots)
        return tree

    def __len__(self) -> int:
        return len(self.parent)

    @property
    def root(self) -> int:
        return self.parent.index(NO_NODE)

    def is_leaf(self, node: int) -> bool:
        return self.left[node] == NO_NODE and self.right[node] == NO_NODE

    def add_child(self, parent: int, child: int) -> None:
        """Attach child under parent, filling the left slot first."""
        if self.left[parent] == NO_NODE:
            self.left[parent] = child
        elif self.right[parent] == NO_NODE:
            self.right[parent] = child
        else:
            raise TreeInvariantError(f"Node {parent} already has two children")
        self.parent[child] = parent

    def set_leaf(self, node: int, seq: str) -> None:
        """Label a leaf with an observed sequence."""
        self.bseq[node] = to_bdna(seq)
        self.labeled[node] = True

    def reroot(self, leaf: int) -> int:
        """Make ``leaf`` the root and return its single child.

        Walking up from the leaf, each node's parent becomes its left child
        (an existing left child moves to the right slot). Parent links are
        then fixed along the new leftmost path.

        Raises:
            NotALeafError: If ``leaf`` has children.
        """
        if not self.is_leaf(leaf):
            raise NotALeafError(leaf)

        n = leaf
        while self.parent[n] != NO_NODE:
            p = self.parent[n]
            if self.left[n] != NO_NODE:
                self.right[n] = self.left[n]
            if self.left[p] == n:
                self.left[p] = NO_NODE
            else:
                self.right[p] = NO_NODE
            self.left[n] = p
            n = p

        self.parent[leaf] = NO_NODE
        n = leaf
        while n != NO_NODE:
            if self.left[n] != NO_NODE:
                self.parent[self.left[n]] = n
                n = self.left[n]
            elif self.right[n] != NO_NODE:
                self.parent[self.right[n]] = n
                n = self.right[n]
            else:
                n = NO_NODE

        return self.left[leaf]

    def _preorder(self) -> list[int]:
        order: list[int] = []
        stack = [self.root]
        while stack:
            n = stack.pop()
            order.append(n)
            if self.right[n] != NO_NODE:
                stack.append(self.right[n])
            if self.left[n] != NO_NODE:
                stack.append(self.left[n])
        return order

    def fitch_up(self) -> None:
        """Label internal nodes from the leaves up.

        A node with two children takes the intersection of their masks, or
        the union where the intersection is empty. A node with one child
        copies it.
        """
        for n in reversed(self._preorder()):
            left, right = self.left[n], self.right[n]
            if left != NO_NODE and right != NO_NODE:
                a, b = self.bseq[left], self.bseq[right]
                both = a & b
                self.bseq[n] = np.where(both != 0, both, a | b)
            elif left != NO_NODE:
                self.bseq[n] = self.bseq[left]
            elif right != NO_NODE:
                self.bseq[n] = self.bseq[right]
            else:
                continue
            self.labeled[n] = True

    def fitch_down(self, root_mask: np.ndarray, rng: np.random.Generator) -> None:
        """Resolve internal nodes from the root down.

        The root takes ``root_mask``. Each node with two children then picks
        a random state from the intersection of its own mask and its
        parent's resolved state, or from its own mask if that is empty.
        Leaves keep their observed labels.
        """
        root = self.root
        self.bseq[root] = root_mask
        for n in self._preorder():
            if n == root or self.left[n] == NO_NODE or self.right[n] == NO_NODE:
                continue
            own = self.bseq[n]
            shared = own & self.bseq[self.parent[n]]
            self.bseq[n] = random_bits(np.where(shared != 0, shared, own), rng)


def resolve_root(
    root_mask: np.ndarray,
    true_root: np.ndarray,
    rng: np.random.Generator,
) -> np.ndarray:
    """Use the known ancestor where it is compatible, else a random state."""
    return np.where(true_root & root_mask, true_root, random_bits(root_mask, rng))


def infer_ancestors(
    sequences: Sequence[str],
    dism: np.ndarray,
    *,
    common_ancestor: str | None = None,
    rng: np.random.Generator,
) -> list[str]:
    """Infer ancestral sequences for the internal nodes of a min-linkage tree.

    Args:
        sequences: Observed, equal-length sequences; sequences[0] is the root.
        dism: Packed distance table over ``sequences``.
        common_ancestor: Known ancestor used to resolve the root. Defaults to
            sequences[0].
        rng: Random generator for tie-breaking and ambiguity resolution.

    Returns:
        Distinct inferred sequences in node order, excluding any identical
        to an observed input.
    """
    n = len(sequences)
    if n < 2:
        return []

    parents = construct_nj_tree(dism[:n, :n], rng)
    length = len(sequences[0])
    tree = BinaryTree.from_parents(parents, length)

    if tree.root != len(tree) - 1:
        raise TreeInvariantError(f"Expected root at node {len(tree) - 1}, found {tree.root}")

    for i, seq in enumerate(sequences):
        tree.set_leaf(i, seq)

    tree.fitch_up()

    ancestor = common_ancestor if common_ancestor else sequences[0]
    root_mask = resolve_root(tree.bseq[tree.root], to_bdna(ancestor), rng)
    tree.fitch_down(root_mask, rng)

    observed = set(sequences)
    inferred: dict[str, None] = {}
    for i in range(n, len(tree)):
        seq = to_dna(tree.bseq[i], rng)
        if seq not in observed:
            inferred.setdefault(seq, None)

    logger.debug(f"Inferred {len(inferred)} distinct ancestors from {n} sequences")
    return list(inferred)
