"""Unit tests for randomized MST construction."""

from __future__ import annotations

import numpy as np
import pytest

from dandelions.core.distance import make_distance_matrix
from dandelions.core.phylogeny.mst import build_mst, parsimony_score, resolve_real_parents

# Equidistant parents 1 and 2 for node 3; parent 1 is nearer the root
TIE_SEQUENCES = ["AAAAAA", "CAAAAA", "CCAAAA", "CGAAAA"]


class TestBuildMst:
    """Tests for build_mst."""

    def test_star(self, star_sequences):
        dism = make_distance_matrix(star_sequences)
        assert build_mst(star_sequences, dism) == [0, 0, 0, 0]

    def test_chain(self, chain_sequences):
        dism = make_distance_matrix(chain_sequences)
        assert build_mst(chain_sequences, dism) == [0, 0, 1]

    def test_ties_prefer_parent_nearer_root(self):
        dism = make_distance_matrix(TIE_SEQUENCES)
        assert build_mst(TIE_SEQUENCES, dism) == [0, 0, 1, 1]

    @pytest.mark.parametrize("seed", range(10))
    def test_shuffle_keeps_unique_tree(self, seed):
        dism = make_distance_matrix(TIE_SEQUENCES)
        tree = build_mst(
            TIE_SEQUENCES, dism, shuffle=True, rng=np.random.default_rng(seed)
        )
        assert tree == [0, 0, 1, 1]

    def test_single_vertex(self):
        assert build_mst(["ACG"], make_distance_matrix(["ACG"])) == [0]

    def test_empty_table(self):
        assert build_mst([], np.zeros((0, 0), dtype=np.uint32)) == []

    def test_table_only(self):
        # Keys alone define the tree when no sequences are given
        keys = np.array(
            [[9, 9, 9], [1, 9, 9], [5, 2, 9]],
            dtype=np.uint32,
        )
        assert build_mst([], keys) == [0, 0, 1]

    def test_shuffle_reproducible(self, lineage_sequences):
        dism = make_distance_matrix(lineage_sequences)
        a = build_mst(lineage_sequences, dism, shuffle=True, rng=np.random.default_rng(4))
        b = build_mst(lineage_sequences, dism, shuffle=True, rng=np.random.default_rng(4))
        assert a == b

    def test_with_inferred_ancestors(self, lineage_sequences, rng):
        dism = make_distance_matrix(lineage_sequences)
        n = len(lineage_sequences)
        tree = build_mst(lineage_sequences, dism, shuffle=True, infer_ancestors=True, rng=rng)
        assert len(tree) >= n
        assert tree[0] == 0
        # Every vertex reaches the root
        for v in range(len(tree)):
            steps = 0
            while v != 0:
                v = tree[v]
                steps += 1
                assert steps <= len(tree)

    def test_parsimony_matches_edge_distances(self, chain_sequences):
        dism = make_distance_matrix(chain_sequences)
        assert parsimony_score(build_mst(chain_sequences, dism), dism) == 2


class TestResolveRealParents:

    def test_skips_inferred_vertices(self):
        # Vertices 3 and 4 are inferred
        tree = [0, 3, 4, 0, 3]
        assert resolve_real_parents(tree, 3) == [0, 0, 0]

    def test_observed_parents_unchanged(self):
        assert resolve_real_parents([0, 0, 1], 3) == [0, 0, 1]
