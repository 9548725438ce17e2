"""
Dandelions: consensus lineage trees with force-directed layout.

Builds a consensus tree from randomized minimum spanning trees over
equal-length nucleotide sequences (for example B cell receptor lineages),
annotates it with codon-aware amino acid mutations, groups nodes with
identical translations and lays the tree out with a physical simulation.
"""

__version__ = "0.1.0"
__author__ = "Dandelions Team"

from dandelions.core.network import ForceSimulation, Network, build_network
from dandelions.core.phylogeny import ConsensusBuilder, build_consensus_mst
from dandelions.models.tree import ConsensusResult, Edge

__all__ = [
    "ConsensusBuilder",
    "ConsensusResult",
    "Edge",
    "ForceSimulation",
    "Network",
    "__version__",
    "build_consensus_mst",
    "build_network",
]
