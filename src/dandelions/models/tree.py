"""
Pydantic models for consensus tree output.

Edges are produced once per analysis and never modified, so every model
here is frozen.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, computed_field


class Edge(BaseModel):
    """A parent-child pairing in the consensus tree.

    Indices refer to the sequence list the tree was built from.
    """

    parent: int = Field(ge=0, description="Index of the parent sequence")
    child: int = Field(ge=0, description="Index of the child sequence")
    distance: int = Field(ge=0, description="Hamming distance from child to parent")
    weight: float = Field(
        ge=0.0,
        le=1.0,
        description="Fraction of sampled trees containing this exact pairing",
    )

    model_config = {"frozen": True}


class ConsensusResult(BaseModel):
    """Consensus tree edges plus parsimony diagnostics."""

    edges: list[Edge] = Field(default_factory=list)
    n_samples: int = Field(ge=1, description="Number of randomized trees sampled")
    baseline_parsimony: int = Field(
        ge=0,
        description="Parsimony of the unshuffled tree without inferred ancestors",
    )
    sample_parsimony: list[int] = Field(
        default_factory=list,
        description="Parsimony of each sampled tree, in sample order",
    )
    consensus_parsimony: int = Field(ge=0, description="Parsimony of the consensus tree")

    @computed_field
    @property
    def mean_sample_parsimony(self) -> float:
        """Mean parsimony over samples."""
        if not self.sample_parsimony:
            return 0.0
        return sum(self.sample_parsimony) / len(self.sample_parsimony)

    model_config = {"frozen": True}
