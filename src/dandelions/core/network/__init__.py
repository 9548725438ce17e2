"""Display tree model and force-directed layout."""

from dandelions.core.network.model import Network, Node, build_network, same_translation
from dandelions.core.network.simulation import Constant, ForceSimulation

__all__ = [
    "Constant",
    "ForceSimulation",
    "Network",
    "Node",
    "build_network",
    "same_translation",
]
