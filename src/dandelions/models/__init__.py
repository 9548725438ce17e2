"""
Pydantic data models for dandelions.

Provides type-safe models for consensus tree edges, consensus results
and analysis configuration.
"""

from dandelions.models.config import (
    AnalysisConfig,
    ConsensusConfig,
    NetworkConfig,
    SimulationConfig,
)
from dandelions.models.tree import ConsensusResult, Edge

__all__ = [
    "AnalysisConfig",
    "ConsensusConfig",
    "ConsensusResult",
    "Edge",
    "NetworkConfig",
    "SimulationConfig",
]
