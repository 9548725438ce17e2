"""
I/O utilities for tree, model and layout exports.

Provides consistent handling of tabular output formats (CSV/Parquet) plus
the text exports: adjacency list, Markov model, mutation table and
centroid FASTA.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Literal

import numpy as np
import polars as pl

from dandelions.core.alignment import MutationTable
from dandelions.core.constants import NUCLEOTIDES
from dandelions.core.network.model import Network
from dandelions.core.network.simulation import ForceSimulation
from dandelions.models.tree import Edge

logger = logging.getLogger(__name__)

OutputFormat = Literal["csv", "parquet"]

EDGE_SCHEMA = {
    "parent": pl.Int64,
    "child": pl.Int64,
    "distance": pl.Int64,
    "weight": pl.Float64,
}


def write_dataframe(
    df: pl.DataFrame,
    path: Path,
    output_format: OutputFormat = "csv",
) -> None:
    """
    Write DataFrame to file in specified format.

    For Parquet output, uses zstd compression.

    Args:
        df: Polars DataFrame to write.
        path: Output file path.
        output_format: Output format - 'csv' or 'parquet'.

    Example:
        >>> df = pl.DataFrame({"a": [1, 2, 3]})
        >>> write_dataframe(df, Path("output.parquet"), "parquet")
    """
    if output_format == "parquet":
        df.write_parquet(path, compression="zstd")
    else:
        df.write_csv(path)


def read_dataframe(path: Path) -> pl.DataFrame:
    """
    Read DataFrame from file, auto-detecting format from extension.

    Supports: .csv, .tsv, .parquet

    Raises:
        ValueError: If file extension is not recognized.
    """
    suffix = path.suffix.lower()
    if suffix == ".parquet":
        return pl.read_parquet(path)
    if suffix == ".csv":
        return pl.read_csv(path)
    if suffix == ".tsv":
        return pl.read_csv(path, separator="\t")
    msg = f"Unrecognized file format: {path}"
    raise ValueError(msg)


# =============================================================================
# Edges
# =============================================================================


def edges_to_dataframe(edges: Sequence[Edge]) -> pl.DataFrame:
    """Consensus edges as a DataFrame with parent, child, distance, weight."""
    return pl.DataFrame([e.model_dump() for e in edges], schema=EDGE_SCHEMA)


def edges_from_dataframe(df: pl.DataFrame) -> list[Edge]:
    """Rebuild validated edges from a DataFrame written by edges_to_dataframe."""
    missing = set(EDGE_SCHEMA) - set(df.columns)
    if missing:
        msg = f"Edge table is missing columns: {sorted(missing)}"
        raise ValueError(msg)
    return [Edge(**row) for row in df.select(list(EDGE_SCHEMA)).iter_rows(named=True)]


def read_edges(path: Path) -> list[Edge]:
    return edges_from_dataframe(read_dataframe(path))


# =============================================================================
# Text exports
# =============================================================================


def write_markov_model(model: np.ndarray, path: Path) -> None:
    """
    Write a 4x4 substitution matrix as CSV.

    The header row is ``,A,C,G,T``; each following row starts with the
    child base. Columns (parent bases) sum to 1.
    """
    df = pl.DataFrame(
        {
            "base": list(NUCLEOTIDES),
            **{base: model[:, c].astype(float) for c, base in enumerate(NUCLEOTIDES)},
        }
    )
    # Leading header cell is blank
    header = "," + ",".join(NUCLEOTIDES) + "\n"
    path.write_text(header + df.write_csv(include_header=False))


def write_adjacency_list(network: Network, path: Path) -> None:
    """
    Write ``(parent, child; confidence)`` lines, a ``//`` separator, then
    each node's translation as ``>id`` / amino acid pairs.
    """
    lines = [
        f"({n.parent}, {n.id}; {n.confidence:g})" for n in network.nodes if not n.is_root
    ]
    lines.append("//")
    for n in network.nodes:
        lines.append(f">{n.id}")
        lines.append(n.aas)
    path.write_text("\n".join(lines) + "\n")


def write_mutation_table(network: Network, path: Path) -> None:
    """
    Write an HTML table of amino acid differences from the root.

    Rows are the root followed by the centroids in rank order, each in its
    display color. Centroids whose translation length differs from the
    root (gapped input) are omitted.
    """
    root = network.root
    rows = [root]
    for c in network.centroids:
        if len(c.aas) != len(root.aas):
            logger.warning(
                f"Centroid {c.centroid_id + 1} translation length differs from the root; "
                "omitted from mutation table"
            )
            continue
        rows.append(c)
    table = MutationTable([n.aas for n in rows])
    path.write_text(table.to_html([n.color for n in rows]), encoding="utf-8")


def write_centroid_fasta(network: Network, path: Path, line_width: int = 80) -> int:
    """
    Write centroid translations as FASTA records named ``Centroid_<rank>``.

    Returns:
        Number of records written.
    """
    from Bio.Seq import Seq
    from Bio.SeqIO.FastaIO import FastaWriter
    from Bio.SeqRecord import SeqRecord

    records = [
        SeqRecord(Seq(c.aas), id=f"Centroid_{c.centroid_id + 1}", description="")
        for c in network.centroids
    ]
    with path.open("w") as handle:
        writer = FastaWriter(handle, wrap=line_width)
        writer.write_file(records)
    return len(records)


# =============================================================================
# Layout
# =============================================================================


def network_to_dataframe(network: Network) -> pl.DataFrame:
    """One row per node with tree, annotation and layout columns."""
    return pl.DataFrame(network.to_records())


def positions_to_dataframe(simulation: ForceSimulation) -> pl.DataFrame:
    """Node positions and velocities in simulation order."""
    return pl.DataFrame(
        {
            "id": simulation.node_ids,
            "x": simulation.x,
            "y": simulation.y,
            "vx": simulation.vx,
            "vy": simulation.vy,
            "radius": simulation.radius,
            "pinned": simulation.pinned,
        }
    )
