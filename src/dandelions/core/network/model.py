"""
Tree model for display: nodes, consolidation and centroid labeling.

A Network owns its nodes in a table keyed by id; parent and child links
are ids into that table. Node 0 is always the root. After construction
from consensus edges, nodes whose translations are identical can be merged
(consolidation), and the largest nodes can be labeled as centroids.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from dandelions.core.alignment import constrained_nw_align, tally_alignment_mutations
from dandelions.core.constants import (
    DEFAULT_CENTROID_SIGMA,
    DEFAULT_GAP_PENALTY,
    PALETTE,
    ROOT_COLOR,
)
from dandelions.core.exceptions import (
    DuplicateNodeError,
    TreeInvariantError,
    UnknownNodeError,
)
from dandelions.core.sequences import hamming_distance, make_valid_dna, translate
from dandelions.models.tree import Edge

logger = logging.getLogger(__name__)

ROOT_ID = 0
DEFAULT_NODE_COLOR = "#ffffff"

NodePredicate = Callable[["Node", "Node"], bool]


@dataclass
class Node:
    """A node of the display tree together with its inbound edge."""

    # Value of centroid_id for nodes that are not centroids
    NA = -1

    id: int
    parent: int | None = None
    children: list[int] = field(default_factory=list)
    nts: str = ""
    aas: str = ""

    # Simulation state
    x: float = 0.0
    y: float = 0.0
    radius: float = 1.0
    mass: float = 1.0
    z: int = -1

    # Inbound edge
    length: float = 0.0
    confidence: float = 1.0

    # Consolidation counters
    total: int = 1
    inferred: int = 0

    centroid_id: int = NA
    color: str = DEFAULT_NODE_COLOR
    label: str = ""

    # Annotations relative to the root
    mutations: list[str] = field(default_factory=list)
    root_distance: int = 0
    parent_distance: int = 0

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def is_disconnected(self) -> bool:
        return self.parent is None and not self.children

    @property
    def is_centroid(self) -> bool:
        return self.centroid_id != Node.NA

    @property
    def size(self) -> int:
        """Children plus merged nodes; used to rank centroids."""
        return len(self.children) + self.total

    def set_sequence(self, seq: str) -> int:
        """Set nucleotides (filtered to ACGT-) and their translation.

        Returns:
            Number of characters filtered out.
        """
        self.nts, filtered = make_valid_dna(seq)
        self.aas = translate(self.nts)
        return filtered


class Network:
    """Arena of nodes forming a rooted tree.

    Example:
        >>> net = Network()
        >>> _ = net.add_node(0), net.add_node(1)
        >>> net.add_edge(0, 1, length=2.0, confidence=0.5)
        >>> net.node(1).parent
        0
    """

    def __init__(self) -> None:
        self._nodes: dict[int, Node] = {}
        self._centroids: list[int] = []

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def __contains__(self, node_id: int) -> bool:
        return node_id in self._nodes

    @property
    def nodes(self) -> list[Node]:
        """Nodes sorted by id."""
        return [self._nodes[i] for i in sorted(self._nodes)]

    @property
    def root(self) -> Node:
        return self.node(ROOT_ID)

    def node(self, node_id: int) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise UnknownNodeError(node_id) from None

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def add_node(self, node_id: int) -> Node:
        """Create a node. Node 0 is the root.

        Raises:
            DuplicateNodeError: If a node with this id exists.
        """
        if node_id in self._nodes:
            raise DuplicateNodeError(node_id)
        node = Node(id=node_id)
        self._nodes[node_id] = node
        return node

    def add_edge(
        self,
        parent_id: int,
        child_id: int,
        length: float = 1.0,
        confidence: float = 1.0,
    ) -> None:
        """Attach child under parent and record the inbound edge.

        Raises:
            UnknownNodeError: If either node is missing.
            TreeInvariantError: If the edge would give the child a second
                parent or close a cycle.
        """
        if parent_id not in self._nodes or child_id not in self._nodes:
            raise UnknownNodeError(parent_id, child_id)

        parent = self._nodes[parent_id]
        child = self._nodes[child_id]

        if child.parent is not None:
            raise TreeInvariantError(
                f"Node {child_id} already has parent {child.parent}"
            )
        n: int | None = parent_id
        while n is not None:
            if n == child_id:
                raise TreeInvariantError(
                    f"Edge {parent_id} -> {child_id} would create a cycle"
                )
            n = self._nodes[n].parent

        child.parent = parent_id
        parent.children.append(child_id)
        child.length = length
        child.confidence = confidence

    @classmethod
    def from_edges(cls, sequences: Sequence[str], edges: Sequence[Edge]) -> Network:
        """Build a network with one node per sequence reached by ``edges``.

        Node ids are sequence indices. Edge distance becomes the inbound
        edge length and edge weight its confidence.
        """
        out_of_range = sorted(
            {i for e in edges for i in (e.parent, e.child) if i >= len(sequences)}
        )
        if out_of_range:
            raise UnknownNodeError(
                *out_of_range,
                suggestion=(
                    f"Edges reference sequences beyond the {len(sequences)} loaded; "
                    "rebuild the edge table from the same input file"
                ),
            )

        net = cls()
        net.add_node(ROOT_ID)
        for e in edges:
            net.add_node(e.child)
        for e in edges:
            net.add_edge(e.parent, e.child, length=float(e.distance), confidence=e.weight)

        filtered = 0
        for node in net.nodes:
            filtered += node.set_sequence(sequences[node.id])
        if filtered:
            logger.warning(f"Filtered {filtered} non-nucleotide characters from node sequences")

        return net

    def _remove_child(self, parent: Node, child: Node) -> None:
        parent.children.remove(child.id)
        child.parent = None

    # -------------------------------------------------------------------------
    # Consolidation
    # -------------------------------------------------------------------------

    def _absorb(self, keeper: Node, other: Node) -> None:
        """Move other's children and counters into keeper, detaching other."""
        for gc in other.children:
            self._nodes[gc].parent = keeper.id
            keeper.children.append(gc)
        other.children = []
        other.parent = None
        keeper.total += other.total
        keeper.inferred += other.inferred

    def merge_child(self, parent_id: int, child_id: int) -> None:
        """Merge a child into its parent."""
        parent, child = self.node(parent_id), self.node(child_id)
        if child.parent != parent_id:
            raise TreeInvariantError(f"Node {child_id} is not a child of {parent_id}")
        parent.children.remove(child_id)
        self._absorb(parent, child)

    def merge_sibling(self, keeper_id: int, sibling_id: int) -> None:
        """Merge a sibling into ``keeper_id``."""
        keeper, sibling = self.node(keeper_id), self.node(sibling_id)
        if keeper.parent is None or sibling.parent != keeper.parent:
            raise TreeInvariantError(f"Nodes {keeper_id} and {sibling_id} are not siblings")
        self._nodes[keeper.parent].children.remove(sibling_id)
        self._absorb(keeper, sibling)

    def _consolidate_at(self, root: Node, predicate: NodePredicate) -> int:
        """Merge equivalent children and siblings under one node until stable."""
        merged = 0
        while True:
            mergers = 0

            for cid in list(root.children):
                if predicate(root, self._nodes[cid]):
                    self.merge_child(root.id, cid)
                    mergers += 1

            siblings = list(root.children)
            while siblings:
                a = siblings.pop()
                i = 0
                while i < len(siblings):
                    if predicate(self._nodes[a], self._nodes[siblings[i]]):
                        self.merge_sibling(a, siblings[i])
                        siblings[i] = siblings[-1]
                        siblings.pop()
                        mergers += 1
                    else:
                        i += 1

            merged += mergers
            if mergers == 0:
                return merged

    def consolidate(self, predicate: NodePredicate, root_id: int | None = None) -> int:
        """Merge nodes that ``predicate`` considers equivalent.

        Starting at ``root_id`` (default: the root), children equivalent to
        their parent are merged into it and equivalent siblings are merged
        into each other, repeating until nothing changes; the same is then
        applied to each remaining child. Nodes left disconnected are
        removed, except the root.

        Args:
            predicate: Called as ``predicate(a, b)``; True means merge.
            root_id: Node to start from.

        Returns:
            Number of merges performed.
        """
        start = self.node(ROOT_ID if root_id is None else root_id)

        merged = 0
        stack = [start.id]
        while stack:
            node = self._nodes[stack.pop()]
            merged += self._consolidate_at(node, predicate)
            stack.extend(reversed(node.children))

        pruned = [
            nid for nid, n in self._nodes.items() if n.is_disconnected and nid != ROOT_ID
        ]
        for nid in pruned:
            del self._nodes[nid]
        self._centroids = [c for c in self._centroids if c in self._nodes]

        logger.info(f"Consolidation merged {merged} nodes, {len(self._nodes)} remain")
        return merged

    def remove_inferred_leaves(self) -> int:
        """Repeatedly remove leaves made up only of inferred sequences.

        Returns:
            Number of nodes removed.
        """
        initial = len(self._nodes)
        while True:
            doomed = [n for n in self.nodes if n.is_leaf and n.inferred == n.total]
            if not doomed:
                break
            for n in doomed:
                if n.parent is not None:
                    self._remove_child(self._nodes[n.parent], n)
                del self._nodes[n.id]
        self._centroids = [c for c in self._centroids if c in self._nodes]
        return initial - len(self._nodes)

    # -------------------------------------------------------------------------
    # Centroids
    # -------------------------------------------------------------------------

    @property
    def centroids(self) -> list[Node]:
        """Centroid nodes in rank order (largest first)."""
        return [self._nodes[i] for i in self._centroids]

    def clear_centroids(self) -> None:
        self._centroids = []
        for n in self._nodes.values():
            n.centroid_id = Node.NA

    def identify_centroids(self, node_ids: Sequence[int]) -> None:
        """Label the given nodes (root excluded) as centroids.

        Centroids are ranked by children plus merged count, largest first,
        and the rank becomes each node's centroid_id.
        """
        self.clear_centroids()
        candidates = [self.node(i) for i in node_ids if not self.node(i).is_root]
        candidates.sort(key=lambda n: n.size, reverse=True)
        for rank, n in enumerate(candidates):
            n.centroid_id = rank
        self._centroids = [n.id for n in candidates]

    def label_top_n_centroids(self, top_n: int) -> list[int]:
        """Label the ``top_n`` largest non-root nodes as centroids."""
        priority = sorted(
            (n for n in self.nodes if not n.is_root),
            key=lambda n: n.size,
            reverse=True,
        )
        ids = [n.id for n in priority[:top_n]]
        self.identify_centroids(ids)
        return [n.id for n in self.centroids]

    def label_auto_threshold_centroids(
        self,
        sigma: float = DEFAULT_CENTROID_SIGMA,
    ) -> list[int]:
        """Label nodes whose size is ``sigma`` standard deviations above the mean.

        Node size is children plus merged count minus one, taken over
        non-root nodes.

        Returns:
            Ids of the labeled centroids in rank order.
        """
        sizes = {n.id: n.size - 1 for n in self.nodes if not n.is_root}
        if not sizes:
            self.clear_centroids()
            return []

        values = list(sizes.values())
        mean = sum(values) / len(values)
        variance = sum((v - mean) ** 2 for v in values) / len(values)
        threshold = mean + sigma * math.sqrt(variance)

        ids = [nid for nid, size in sizes.items() if size >= threshold]
        self.identify_centroids(ids)
        logger.info(
            f"Labeled {len(ids)} centroids (size >= {threshold:.2f}, "
            f"mean {mean:.2f}, sd {math.sqrt(variance):.2f})"
        )
        return [n.id for n in self.centroids]

    # -------------------------------------------------------------------------
    # Annotation
    # -------------------------------------------------------------------------

    def annotate_mutations(self, gap_penalty: float = DEFAULT_GAP_PENALTY) -> None:
        """Record amino acid mutations and nucleotide distances relative to the root."""
        root = self.root
        for n in self.nodes:
            if n.is_root:
                continue
            top, btm = constrained_nw_align(root.nts, n.nts, gap_penalty)
            n.mutations = tally_alignment_mutations(top, btm)
            n.root_distance = hamming_distance(root.nts, n.nts)
            n.parent_distance = hamming_distance(n.nts, self._nodes[n.parent].nts)

    def stylize(self, palette: Sequence[str] = PALETTE) -> None:
        """Set radius, draw order, color and label from consolidation and centroids.

        Radius grows with the square root of the observed sequences a node
        represents. Centroids are drawn above their lineage, and their
        color extends up to the nearest labeled ancestor.
        """
        centroids = self.centroids
        n_centroids = len(centroids)

        for n in self._nodes.values():
            n.radius = math.sqrt(max(1, n.total - n.inferred))
            n.z = -1
            n.color = DEFAULT_NODE_COLOR
            n.label = "?" if n.total == n.inferred else ""

        for c in centroids:
            c.label = str(c.centroid_id + 1)
            c.color = palette[c.centroid_id % len(palette)]
            c.z = 2 * n_centroids - c.centroid_id

        # Lower-ranked centroids are visited first so the highest rank wins
        for c in reversed(centroids):
            p = c.parent
            while p is not None:
                anc = self._nodes[p]
                if anc.is_centroid or anc.parent is None:
                    break
                anc.z = n_centroids - c.centroid_id
                anc.color = c.color
                p = anc.parent

        for n in self._nodes.values():
            if n.total == n.inferred:
                n.color = ROOT_COLOR
        root = self.root
        root.color = ROOT_COLOR
        root.z = 0

    def to_records(self) -> list[dict[str, Any]]:
        """One flat record per node, sorted by id."""
        return [
            {
                "id": n.id,
                "parent": n.parent,
                "n_children": len(n.children),
                "total": n.total,
                "inferred": n.inferred,
                "centroid": n.centroid_id + 1 if n.is_centroid else None,
                "length": n.length,
                "confidence": n.confidence,
                "root_distance": n.root_distance,
                "parent_distance": n.parent_distance,
                "mutations": ",".join(n.mutations),
                "x": n.x,
                "y": n.y,
                "radius": n.radius,
                "color": n.color,
                "aas": n.aas,
            }
            for n in self.nodes
        ]


def same_translation(a: Node, b: Node) -> bool:
    """Consolidation predicate: merge nodes with identical amino acids."""
    return a.aas == b.aas


def build_network(
    sequences: Sequence[str],
    edges: Sequence[Edge],
    *,
    consolidate: bool = True,
    centroid_sigma: float = DEFAULT_CENTROID_SIGMA,
    top_n_centroids: int | None = None,
    gap_penalty: float = DEFAULT_GAP_PENALTY,
    remove_inferred_leaves: bool = True,
) -> Network:
    """Construct, annotate, consolidate and label a network from consensus edges."""
    net = Network.from_edges(sequences, edges)
    net.annotate_mutations(gap_penalty)

    if consolidate:
        net.consolidate(same_translation)
    if remove_inferred_leaves:
        removed = net.remove_inferred_leaves()
        if removed:
            logger.info(f"Removed {removed} inferred-only leaves")

    if top_n_centroids is not None:
        net.label_top_n_centroids(top_n_centroids)
    else:
        net.label_auto_threshold_centroids(centroid_sigma)

    net.stylize()
    return net
