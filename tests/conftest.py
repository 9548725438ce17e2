"""
Shared pytest fixtures for dandelions tests.

Provides small sequence sets with known tree structure and helpers to
write them in each supported input format.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pytest

from dandelions.core.network.model import Network

# =============================================================================
# Sequence Fixtures
# =============================================================================

ROOT = "AAAAAAAAA"  # KKK


@pytest.fixture
def star_sequences() -> list[str]:
    """Root plus three sequences one substitution away from it.

    Sequences are two substitutions apart from each other, so every
    tree attaches all three directly to the root.
    """
    return [
        ROOT,
        "CAAAAAAAA",  # QKK
        "AAAACAAAA",  # KTK
        "AAAAAAGAA",  # KKE
    ]


@pytest.fixture
def chain_sequences() -> list[str]:
    """Root -> 1 -> 2, each one substitution from the previous."""
    return [
        ROOT,
        "CAAAAAAAA",
        "CCAAAAAAA",
    ]


@pytest.fixture
def lineage_sequences() -> list[str]:
    """A slightly larger lineage with branching and synonymous changes."""
    return [
        "ATGAAACCCGGGTTT",
        "ATGAAGCCCGGGTTT",
        "ATGAAACCAGGGTTT",
        "ATGCAACCCGGGTTT",
        "ATGCAACCCGGATTT",
        "ATGCAACCCGGATTC",
        "ATGAAACCCGTGTTT",
        "ATGCAACCCAGATTC",
    ]


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(12345)


# =============================================================================
# Network Fixtures
# =============================================================================


@pytest.fixture
def bushy_network() -> Network:
    """Root with five children; node 1 has four children of its own.

    No sequences are attached, so the network only exercises topology.
    """
    net = Network()
    for i in range(10):
        net.add_node(i)
    for c in range(1, 6):
        net.add_edge(0, c)
    for c in range(6, 10):
        net.add_edge(1, c)
    return net


# =============================================================================
# File Fixtures
# =============================================================================


@pytest.fixture
def write_fasta(tmp_path: Path):
    """Factory writing sequences as FASTA into tmp_path."""

    def _write(sequences: list[str], name: str = "seqs.fasta") -> Path:
        path = tmp_path / name
        path.write_text(
            "".join(f">seq{i}\n{seq}\n" for i, seq in enumerate(sequences))
        )
        return path

    return _write


@pytest.fixture
def write_dsa(tmp_path: Path):
    """Factory writing sequences in dsa output layout into tmp_path."""

    def _write(sequences: list[str], name: str = "dsa.csv") -> Path:
        root, *others = sequences
        lines = [
            "#dsa output",
            f"#dna template sequence\t{root}",
            "#Alignments#",
            "#aa\tid\tcount\tnt",
        ]
        for i, seq in enumerate(others):
            lines.append("KKK")
            lines.append(f"{i}\tread{i}\t1\t{seq}")
        lines.append("#end")
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n")
        return path

    return _write


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo CLI logging setup so caplog sees package records."""
    yield
    logger = logging.getLogger("dandelions")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
