"""Unit tests for tabular and text exports."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import polars as pl
import pytest

from dandelions.core.io_utils import (
    edges_from_dataframe,
    edges_to_dataframe,
    network_to_dataframe,
    positions_to_dataframe,
    read_dataframe,
    read_edges,
    write_adjacency_list,
    write_centroid_fasta,
    write_dataframe,
    write_markov_model,
    write_mutation_table,
)
from dandelions.core.network import ForceSimulation, build_network
from dandelions.models.config import SimulationConfig
from dandelions.models.tree import Edge


@pytest.fixture
def edges() -> list[Edge]:
    return [
        Edge(parent=0, child=1, distance=1, weight=1.0),
        Edge(parent=1, child=2, distance=1, weight=0.75),
    ]


@pytest.fixture
def chain_network(chain_sequences, edges):
    return build_network(chain_sequences, edges, top_n_centroids=1)


class TestDataFrames:

    @pytest.mark.parametrize("fmt,suffix", [("csv", ".csv"), ("parquet", ".parquet")])
    def test_edges_through_file(self, tmp_path: Path, edges, fmt, suffix):
        path = tmp_path / f"edges{suffix}"
        write_dataframe(edges_to_dataframe(edges), path, fmt)
        assert read_edges(path) == edges

    def test_tsv(self, tmp_path: Path):
        path = tmp_path / "t.tsv"
        path.write_text("a\tb\n1\t2\n")
        assert read_dataframe(path).columns == ["a", "b"]

    def test_unknown_suffix(self, tmp_path: Path):
        with pytest.raises(ValueError):
            read_dataframe(tmp_path / "x.json")

    def test_missing_edge_columns(self):
        with pytest.raises(ValueError, match="missing columns"):
            edges_from_dataframe(pl.DataFrame({"parent": [0], "child": [1]}))

    def test_network_table(self, chain_network):
        df = network_to_dataframe(chain_network)
        assert df["id"].to_list() == [0, 1, 2]
        assert df["mutations"].to_list() == ["", "K1Q", "K1P"]


class TestTextExports:
    """Tests for Markov, adjacency, mutation table and FASTA exports."""

    def test_markov_model(self, tmp_path: Path):
        path = tmp_path / "markov.csv"
        model = np.array([
            [0.5, 0.0, 0.0, 0.25],
            [0.5, 1.0, 0.0, 0.0],
            [0.0, 0.0, 1.0, 0.0],
            [0.0, 0.0, 0.0, 0.75],
        ])
        write_markov_model(model, path)
        lines = path.read_text().splitlines()
        assert lines[0] == ",A,C,G,T"
        assert [line.split(",")[0] for line in lines[1:]] == list("ACGT")
        rows = [[float(v) for v in line.split(",")[1:]] for line in lines[1:]]
        assert np.array_equal(np.array(rows), model)

    def test_adjacency_list(self, tmp_path: Path, chain_network):
        path = tmp_path / "adjacency.txt"
        write_adjacency_list(chain_network, path)
        lines = path.read_text().splitlines()
        assert lines[:3] == ["(0, 1; 1)", "(1, 2; 0.75)", "//"]
        assert lines[3:5] == [">0", "KKK"]
        assert lines[-2:] == [">2", "PKK"]

    def test_mutation_table(self, tmp_path: Path, chain_network):
        path = tmp_path / "mutations.html"
        write_mutation_table(chain_network, path)
        html = path.read_text()
        assert "<table" in html
        assert chain_network.centroids[0].color in html

    def test_mutation_table_without_centroids(self, tmp_path: Path, chain_sequences, edges):
        net = build_network(chain_sequences, edges, top_n_centroids=0)
        path = tmp_path / "mutations.html"
        write_mutation_table(net, path)
        assert "KKK" in path.read_text()

    def test_centroid_fasta(self, tmp_path: Path, chain_network):
        path = tmp_path / "centroids.fasta"
        assert write_centroid_fasta(chain_network, path) == 1
        text = path.read_text()
        assert text.startswith(">Centroid_1\n")

    def test_positions(self, chain_network):
        with ForceSimulation(chain_network, SimulationConfig(seed=0)) as sim:
            sim.run(2)
            df = positions_to_dataframe(sim)
        assert df.columns == ["id", "x", "y", "vx", "vy", "radius", "pinned"]
        assert sorted(df["id"].to_list()) == [0, 1, 2]
