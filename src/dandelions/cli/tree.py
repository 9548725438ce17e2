"""
Tree command for building consensus trees.

Provides subcommands:
- build: Sample randomized MSTs and write the consensus tree with its exports
"""
from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from dandelions.cli.utils import QuietConsole, load_config, report_error, setup_logging, spinner_progress
from dandelions.core.exceptions import DandelionsError, GappedSequenceError
from dandelions.core.parsers import InputFormat

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="tree",
    help="Build consensus trees from aligned nucleotide sequences",
    no_args_is_help=True,
)

console = Console()


@app.command(name="build")
def build(
    input_file: Path = typer.Argument(
        ...,
        help="Sequence file: dsa output (.csv), FASTA or one sequence per line",
        exists=True,
        dir_okay=False,
    ),
    input_format: InputFormat | None = typer.Option(
        None,
        "--format",
        help="Input format (default: detect from file extension)",
    ),
    output_dir: Path = typer.Option(
        Path("dandelions_out"),
        "--output-dir",
        "-o",
        help="Directory for output files",
    ),
    samples: int | None = typer.Option(
        None,
        "--samples",
        "-n",
        help="Number of randomized trees to sample",
        min=1,
    ),
    infer_ancestors: bool | None = typer.Option(
        None,
        "--infer-ancestors/--no-infer-ancestors",
        help="Add inferred ancestral sequences as candidate parents",
    ),
    seed: int | None = typer.Option(
        None,
        "--seed",
        "-s",
        help="Random seed for reproducible sampling",
        min=0,
    ),
    workers: int | None = typer.Option(
        None,
        "--workers",
        "-t",
        help="Worker threads for sampling (default: all CPUs)",
        min=1,
    ),
    sigma: float | None = typer.Option(
        None,
        "--sigma",
        help="Centroid threshold in standard deviations above mean node size",
    ),
    top_n: int | None = typer.Option(
        None,
        "--top-n",
        help="Label the N largest nodes as centroids instead of thresholding",
        min=0,
    ),
    gap_penalty: float | None = typer.Option(
        None,
        "--gap-penalty",
        help="Gap penalty for codon alignment against the root",
        min=0.0,
    ),
    no_consolidate: bool = typer.Option(
        False,
        "--no-consolidate",
        help="Keep nodes whose translations are identical to a neighbor",
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML configuration file; command-line options take precedence",
        exists=True,
        dir_okay=False,
    ),
    output_format: str = typer.Option(
        "csv",
        "--table-format",
        help="Format for tabular outputs: 'csv' or 'parquet'",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress progress output",
    ),
) -> None:
    """
    Build a consensus tree.

    The first sequence in the input is the root. Writes:

    - edges: consensus edges with distances and support weights

    - markov.csv: nucleotide substitution matrix along the edges

    - adjacency.txt: edge list and node translations

    - mutations.html: amino acid differences of centroids from the root

    - centroids.fasta: centroid translations

    - nodes: per-node table of the consolidated network

    Examples:

        # 100 samples with a fixed seed
        dandelions tree build seqs.fasta -n 100 --seed 42 -o out/

        # With inferred ancestors and settings from a file
        dandelions tree build dsa.csv --infer-ancestors --config run.yaml
    """
    from dandelions.core.io_utils import (
        edges_to_dataframe,
        network_to_dataframe,
        write_adjacency_list,
        write_centroid_fasta,
        write_dataframe,
        write_markov_model,
        write_mutation_table,
    )
    from dandelions.core.network import build_network
    from dandelions.core.parsers import load_sequences
    from dandelions.core.phylogeny import ConsensusBuilder, infer_markov_model

    out = QuietConsole(console, quiet=quiet)
    setup_logging(console, verbose=verbose, quiet=quiet)

    output_format = output_format.lower()
    if output_format not in ("csv", "parquet"):
        console.print(
            f"[red]Error: Invalid format '{output_format}'. "
            f"Use 'csv' or 'parquet'.[/red]"
        )
        raise typer.Exit(code=1) from None

    out.print("\n[bold blue]Dandelions Consensus Tree[/bold blue]\n")

    try:
        config = load_config(config_file).with_overrides(
            consensus={
                "n_samples": samples,
                "infer_ancestors": infer_ancestors,
                "seed": seed,
                "max_workers": workers,
            },
            network={
                "consolidate": False if no_consolidate else None,
                "centroid_sigma": sigma,
                "top_n_centroids": top_n,
                "gap_penalty": gap_penalty,
            },
        )

        sequences = load_sequences(input_file, input_format)
        out.print(f"[bold]Input:[/bold] {input_file} ({len(sequences)} sequences)")
        out.print(f"[bold]Samples:[/bold] {config.consensus.n_samples}")

        with spinner_progress("Sampling trees...", console, quiet):
            result = ConsensusBuilder(config.consensus).build(sequences)

        output_dir.mkdir(parents=True, exist_ok=True)
        ext = "parquet" if output_format == "parquet" else "csv"

        edges_path = output_dir / f"edges.{ext}"
        write_dataframe(edges_to_dataframe(result.edges), edges_path, output_format)

        try:
            write_markov_model(
                infer_markov_model(sequences, result.edges), output_dir / "markov.csv"
            )
        except GappedSequenceError as e:
            logger.warning(f"Skipping Markov model: {e.message}")

        with spinner_progress("Annotating network...", console, quiet):
            net_cfg = config.network
            network = build_network(
                sequences,
                result.edges,
                consolidate=net_cfg.consolidate,
                centroid_sigma=net_cfg.centroid_sigma,
                top_n_centroids=net_cfg.top_n_centroids,
                gap_penalty=net_cfg.gap_penalty,
                remove_inferred_leaves=net_cfg.remove_inferred_leaves,
            )

        write_adjacency_list(network, output_dir / "adjacency.txt")
        write_mutation_table(network, output_dir / "mutations.html")
        n_centroids = write_centroid_fasta(network, output_dir / "centroids.fasta")
        write_dataframe(network_to_dataframe(network), output_dir / f"nodes.{ext}", output_format)

    except DandelionsError as e:
        report_error(console, e, verbose)
        raise typer.Exit(code=1) from None
    except FileNotFoundError as e:
        console.print(f"\n[red]File not found: {e}[/red]")
        raise typer.Exit(code=1) from None
    except PermissionError as e:
        console.print(f"\n[red]Permission denied: {e}[/red]")
        console.print("[dim]Check file permissions and try again.[/dim]")
        raise typer.Exit(code=1) from None

    table = Table(title="Consensus Summary", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Sequences", f"{len(sequences):,}")
    table.add_row("Edges", f"{len(result.edges):,}")
    table.add_row("Best parsimony", f"{result.baseline_parsimony:,}")
    table.add_row("Mean sample parsimony", f"{result.mean_sample_parsimony:,.1f}")
    table.add_row("Consensus parsimony", f"{result.consensus_parsimony:,}")
    table.add_row("Network nodes", f"{len(network):,}")
    table.add_row("Centroids", f"{n_centroids:,}")
    out.print(table)

    out.print(f"\n[green]Outputs written to {output_dir}[/green]\n")
