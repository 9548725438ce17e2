"""
Pydantic configuration models for dandelions.

These models define the tunable parameters of consensus tree building,
network consolidation and the force-directed layout. Configuration can be
loaded from YAML files or built from CLI arguments.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, Field, model_validator

from dandelions.core.constants import DEFAULT_CENTROID_SIGMA, DEFAULT_GAP_PENALTY
from dandelions.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class ConsensusConfig(BaseModel):
    """Configuration for consensus MST sampling."""

    n_samples: int = Field(
        default=1,
        ge=1,
        description="Number of randomized MSTs to build consensus from",
    )
    infer_ancestors: bool = Field(
        default=False,
        description=(
            "Shape each sampled tree with ancestral sequences inferred by "
            "min-linkage neighbor joining and Fitch parsimony"
        ),
    )
    seed: int | None = Field(
        default=None,
        ge=0,
        description="Random seed; identical seeds give identical consensus trees",
    )
    max_workers: int | None = Field(
        default=None,
        ge=1,
        description="Worker threads for sampling (default: CPU count)",
    )

    model_config = {"frozen": True}


class SimulationConfig(BaseModel):
    """
    Physical constants for the force-directed layout.

    Repulsion acts between every pair of nodes; springs connect parents
    and children. Drag and compaction damp velocity and pull nodes toward
    the origin.
    """

    repulsion: float = Field(
        default=0.1,
        ge=0.0,
        description="Inverse-square repulsion strength between node pairs",
    )
    tension: float = Field(
        default=0.25,
        ge=0.0,
        description="Spring constant for parent-child edges",
    )
    scale: float = Field(
        default=1.0,
        gt=0.0,
        description="Multiplier applied to edge lengths to get spring rest lengths",
    )
    drag: float = Field(default=1.0, ge=0.0, description="Velocity damping")
    compaction: float = Field(
        default=0.001,
        ge=0.0,
        description="Restoring force toward the origin, proportional to position",
    )
    max_speed: float = Field(default=0.2, gt=0.0, description="Speed limit per step")
    timestep: float = Field(default=1.0, gt=0.0, description="Integration timestep")
    epsilon: float = Field(
        default=1e-4,
        gt=0.0,
        description="Floor on squared distance in the repulsion term",
    )
    n_workers: int | None = Field(
        default=None,
        ge=1,
        description="Worker threads for pairwise forces (default: CPU count)",
    )
    seed: int | None = Field(
        default=None,
        ge=0,
        description="Random seed for initial positions",
    )

    model_config = {"frozen": True}


class NetworkConfig(BaseModel):
    """Configuration for network consolidation and centroid labeling."""

    consolidate: bool = Field(
        default=True,
        description="Merge nodes whose translated sequences are identical",
    )
    centroid_sigma: float = Field(
        default=DEFAULT_CENTROID_SIGMA,
        ge=0.0,
        description="Label nodes this many standard deviations above mean size as centroids",
    )
    top_n_centroids: int | None = Field(
        default=None,
        ge=0,
        description="Label the N largest nodes as centroids instead of using a threshold",
    )
    gap_penalty: float = Field(
        default=DEFAULT_GAP_PENALTY,
        ge=0.0,
        description="Linear gap penalty for codon-constrained alignment",
    )
    remove_inferred_leaves: bool = Field(
        default=True,
        description="Drop leaves that consist only of inferred ancestors",
    )

    model_config = {"frozen": True}


class AnalysisConfig(BaseModel):
    """
    Top-level configuration for a full analysis run.

    Nests the consensus, network and simulation sections. YAML files use the
    same nesting::

        consensus:
          n_samples: 100
          seed: 42
        network:
          centroid_sigma: 2.0
        simulation:
          repulsion: 0.1
    """

    consensus: ConsensusConfig = Field(default_factory=ConsensusConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)

    @model_validator(mode="before")
    @classmethod
    def drop_unknown_sections(cls, data: Any) -> Any:
        """Ignore unknown top-level and per-section keys (forward compatibility)."""
        if not isinstance(data, dict):
            return data
        sections = {
            "consensus": ConsensusConfig,
            "network": NetworkConfig,
            "simulation": SimulationConfig,
        }
        cleaned: dict[str, Any] = {}
        for name, model in sections.items():
            section = data.get(name)
            if section is None:
                continue
            if isinstance(section, BaseModel):
                cleaned[name] = section
                continue
            if not isinstance(section, dict):
                msg = f"Config section '{name}' must be a mapping, got {type(section).__name__}"
                raise ValueError(msg)
            unknown = set(section) - set(model.model_fields)
            if unknown:
                logger.debug(f"Ignoring unknown {name} keys: {sorted(unknown)}")
            cleaned[name] = {k: v for k, v in section.items() if k in model.model_fields}
        return cleaned

    def with_overrides(self, **sections: dict[str, Any]) -> Self:
        """Return a copy with per-section fields replaced.

        None values are skipped so CLI options left unset keep the file or
        default value.

        Example:
            >>> cfg = AnalysisConfig().with_overrides(consensus={"n_samples": 10})
            >>> cfg.consensus.n_samples
            10
        """
        updates: dict[str, Any] = {}
        for name, values in sections.items():
            current = getattr(self, name)
            changed = {k: v for k, v in values.items() if v is not None}
            if changed:
                updates[name] = current.model_copy(update=changed)
        return self.model_copy(update=updates)

    @classmethod
    def from_yaml(cls, path: Path) -> AnalysisConfig:
        """
        Load configuration from a YAML file.

        Args:
            path: Path to YAML configuration file.

        Returns:
            AnalysisConfig populated from YAML values merged with defaults.

        Raises:
            FileNotFoundError: If the YAML file does not exist.
            ConfigurationError: If the file is not a mapping or holds
                invalid values.
        """
        import yaml
        from pydantic import ValidationError

        raw = yaml.safe_load(path.read_text())
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigurationError(
                f"YAML config must be a mapping, got {type(raw).__name__}",
                suggestion="Use top-level 'consensus', 'network' and 'simulation' sections.",
            )

        try:
            return cls.model_validate(raw)
        except (ValidationError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e

    def to_yaml(self, path: Path) -> None:
        """Write configuration to a YAML file."""
        path.write_text(self.to_yaml_str())

    def to_yaml_str(self) -> str:
        """Serialize configuration to a YAML string."""
        import yaml

        return yaml.dump(self.model_dump(), default_flow_style=False, sort_keys=False)

    model_config = {"frozen": True}
