"""Tree building: randomized MSTs, consensus, ancestral inference and Markov models."""

from dandelions.core.phylogeny.ancestral import (
    BinaryTree,
    bit_decode,
    bit_encode,
    construct_nj_tree,
    infer_ancestors,
    random_bits,
    to_bdna,
    to_dna,
)
from dandelions.core.phylogeny.consensus import ConsensusBuilder, build_consensus_mst
from dandelions.core.phylogeny.markov import infer_markov_model
from dandelions.core.phylogeny.mst import build_mst, parsimony_score, resolve_real_parents

__all__ = [
    "BinaryTree",
    "ConsensusBuilder",
    "bit_decode",
    "bit_encode",
    "build_consensus_mst",
    "build_mst",
    "construct_nj_tree",
    "infer_ancestors",
    "infer_markov_model",
    "parsimony_score",
    "random_bits",
    "resolve_real_parents",
    "to_bdna",
    "to_dna",
]
