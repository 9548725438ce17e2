"""Unit tests for configuration models."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from dandelions.core.exceptions import ConfigurationError
from dandelions.models.config import (
    AnalysisConfig,
    ConsensusConfig,
    NetworkConfig,
    SimulationConfig,
)


class TestSectionDefaults:

    def test_consensus(self):
        config = ConsensusConfig()
        assert config.n_samples == 1
        assert config.infer_ancestors is False
        assert config.seed is None

    def test_simulation(self):
        config = SimulationConfig()
        assert config.repulsion == 0.1
        assert config.tension == 0.25
        assert config.max_speed == 0.2

    def test_network(self):
        config = NetworkConfig()
        assert config.consolidate is True
        assert config.centroid_sigma == 2.0
        assert config.top_n_centroids is None

    def test_frozen(self):
        config = ConsensusConfig()
        with pytest.raises(ValidationError):
            config.n_samples = 5

    def test_validation(self):
        with pytest.raises(ValidationError):
            ConsensusConfig(n_samples=0)
        with pytest.raises(ValidationError):
            SimulationConfig(timestep=0.0)


class TestAnalysisConfig:
    """Tests for the nested analysis configuration."""

    def test_with_overrides_skips_none(self):
        base = AnalysisConfig(consensus=ConsensusConfig(n_samples=50, seed=1))
        config = base.with_overrides(consensus={"n_samples": None, "seed": 9})
        assert config.consensus.n_samples == 50
        assert config.consensus.seed == 9
        assert base.consensus.seed == 1

    def test_unknown_keys_ignored(self):
        config = AnalysisConfig.model_validate(
            {"consensus": {"n_samples": 3, "colour": "red"}, "plots": {}}
        )
        assert config.consensus.n_samples == 3

    def test_yaml_round_trip(self, tmp_path: Path):
        config = AnalysisConfig(
            consensus=ConsensusConfig(n_samples=25, infer_ancestors=True),
            network=NetworkConfig(top_n_centroids=4),
        )
        path = tmp_path / "config.yaml"
        config.to_yaml(path)
        assert AnalysisConfig.from_yaml(path) == config

    def test_empty_yaml_gives_defaults(self, tmp_path: Path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert AnalysisConfig.from_yaml(path) == AnalysisConfig()

    def test_non_mapping_yaml_raises(self, tmp_path: Path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigurationError):
            AnalysisConfig.from_yaml(path)

    def test_invalid_value_raises(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("consensus:\n  n_samples: 0\n")
        with pytest.raises(ConfigurationError):
            AnalysisConfig.from_yaml(path)

    def test_section_must_be_mapping(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("network: 3\n")
        with pytest.raises(ConfigurationError):
            AnalysisConfig.from_yaml(path)
