"""
Consensus tree from randomized MST samples.

Many shuffled MSTs are built in parallel. Each sample votes for the
(child, observed parent) pairs it contains. A final, unshuffled MST over
the inverted vote table prefers the most frequently sampled edges, and
each resulting edge is weighted by the fraction of samples containing it.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed

import numpy as np

from dandelions.core.constants import PCT_MAX
from dandelions.core.distance import child_distance, make_distance_matrix
from dandelions.core.phylogeny.mst import build_mst, parsimony_score, resolve_real_parents
from dandelions.models.config import ConsensusConfig
from dandelions.models.tree import ConsensusResult, Edge

logger = logging.getLogger(__name__)


class ConsensusBuilder:
    """Build a consensus MST over a set of equal-length sequences.

    Samples run on a thread pool in batches of the worker count. Each
    sample owns its result; votes are folded into the shared table by the
    calling thread only after every future of the batch has completed.

    Example:
        >>> builder = ConsensusBuilder(ConsensusConfig(n_samples=100, seed=7))
        >>> result = builder.build(["AAAA", "CAAA", "ACAA"])
        >>> [(e.parent, e.child) for e in result.edges]
        [(0, 1), (0, 2)]
    """

    def __init__(self, config: ConsensusConfig | None = None):
        self.config = config or ConsensusConfig()

    @property
    def n_workers(self) -> int:
        return self.config.max_workers or max(1, os.cpu_count() or 1)

    def _sample_generators(self) -> list[np.random.Generator]:
        """One independent generator per sample, reproducible for a seed."""
        seeds = np.random.SeedSequence(self.config.seed).spawn(self.config.n_samples)
        return [np.random.default_rng(s) for s in seeds]

    def build(self, sequences: Sequence[str]) -> ConsensusResult:
        """Run all samples and resolve the consensus tree.

        Args:
            sequences: Validated, equal-length sequences; sequences[0] is
                the root.

        Returns:
            ConsensusResult with one edge per non-root sequence.
        """
        n_samples = self.config.n_samples
        infer = self.config.infer_ancestors
        n = len(sequences)

        dism = make_distance_matrix(sequences)

        baseline = parsimony_score(build_mst(sequences, dism), dism)
        logger.info(f"Best possible parsimony score is {baseline}")
        logger.info(f"Sampling {n_samples} trees (infer ancestors: {infer})")

        counts = np.zeros((n, n), dtype=np.uint32)
        sample_scores: list[int] = []
        generators = self._sample_generators()
        batch_size = self.n_workers

        with ThreadPoolExecutor(max_workers=batch_size) as executor:
            for start in range(0, n_samples, batch_size):
                batch = range(start, min(start + batch_size, n_samples))
                future_to_sample = {
                    executor.submit(
                        build_mst,
                        sequences,
                        dism,
                        shuffle=True,
                        infer_ancestors=infer,
                        rng=generators[i],
                    ): i
                    for i in batch
                }

                trees: dict[int, list[int]] = {}
                for future in as_completed(future_to_sample):
                    trees[future_to_sample[future]] = future.result()

                for i in batch:
                    score = self._fold_sample(trees[i], dism, counts)
                    sample_scores.append(score)
                    logger.debug(f"Parsimony score of sample {i} = {score}")

        # Frequently sampled edges get the smallest keys
        inverted = (PCT_MAX - counts).astype(np.uint32)
        tree = build_mst([], inverted)

        edges = []
        consensus_score = 0
        for c in range(1, n):
            p = tree[c]
            distance = int(child_distance(dism[c, p]))
            consensus_score += distance
            edges.append(
                Edge(
                    parent=p,
                    child=c,
                    distance=distance,
                    weight=float(counts[c, p]) / n_samples,
                )
            )

        logger.info(f"Parsimony score of consensus = {consensus_score}")

        return ConsensusResult(
            edges=edges,
            n_samples=n_samples,
            baseline_parsimony=baseline,
            sample_parsimony=sample_scores,
            consensus_parsimony=consensus_score,
        )

    @staticmethod
    def _fold_sample(tree: list[int], dism: np.ndarray, counts: np.ndarray) -> int:
        """Add one sample's votes to ``counts`` and return its parsimony."""
        n = counts.shape[0]
        parents = resolve_real_parents(tree, n)
        score = 0
        for c in range(1, n):
            p = parents[c]
            score += int(child_distance(dism[c, p]))
            counts[c, p] += 1
        return score


def build_consensus_mst(
    sequences: Sequence[str],
    n_samples: int,
    infer_ancestors: bool = False,
    seed: int | None = None,
) -> list[Edge]:
    """Convenience wrapper returning only the consensus edges."""
    config = ConsensusConfig(
        n_samples=n_samples,
        infer_ancestors=infer_ancestors,
        seed=seed,
    )
    return ConsensusBuilder(config).build(sequences).edges
