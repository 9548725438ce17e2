"""
Core algorithms for consensus lineage trees.

This package holds the distance table, tree construction (randomized MSTs,
consensus, ancestral inference), codon-constrained alignment and the
display network with its force-directed layout.
"""

from dandelions.core.distance import make_distance_matrix
from dandelions.core.sequences import hamming_distance, translate

__all__ = [
    "hamming_distance",
    "make_distance_matrix",
    "translate",
]
