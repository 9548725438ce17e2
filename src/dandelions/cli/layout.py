"""
Layout command for force-directed placement of consensus networks.

Provides subcommands:
- run: Simulate the layout for a fixed number of steps and write positions
"""
from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from dandelions.cli.utils import QuietConsole, load_config, report_error, setup_logging, spinner_progress
from dandelions.core.exceptions import DandelionsError
from dandelions.core.parsers import InputFormat

app = typer.Typer(
    name="layout",
    help="Force-directed layout of consensus networks",
    no_args_is_help=True,
)

console = Console()


@app.command(name="run")
def run(
    input_file: Path = typer.Argument(
        ...,
        help="Sequence file the tree was built from",
        exists=True,
        dir_okay=False,
    ),
    input_format: InputFormat | None = typer.Option(
        None,
        "--format",
        help="Input format (default: detect from file extension)",
    ),
    edges_file: Path | None = typer.Option(
        None,
        "--edges",
        "-e",
        help="Edge table from 'tree build' (default: build a consensus tree now)",
        exists=True,
        dir_okay=False,
    ),
    output: Path = typer.Option(
        Path("layout.csv"),
        "--output",
        "-o",
        help="Output node table with positions (.csv or .parquet)",
    ),
    steps: int = typer.Option(
        500,
        "--steps",
        help="Number of simulation steps",
        min=0,
    ),
    seed: int | None = typer.Option(
        None,
        "--seed",
        "-s",
        help="Random seed for sampling and initial positions",
        min=0,
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML configuration file; command-line options take precedence",
        exists=True,
        dir_okay=False,
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
    Lay out a consensus network with a force-directed simulation.

    The root is pinned in place. The output table holds one row per node
    with its final position, radius and color.

    Examples:

        # Lay out a previously built tree
        dandelions layout run seqs.fasta --edges out/edges.csv -o layout.csv

        # Build and lay out in one go
        dandelions layout run seqs.fasta --steps 1000 --seed 1
    """
    from dandelions.core.io_utils import network_to_dataframe, read_edges, write_dataframe
    from dandelions.core.network import ForceSimulation, build_network
    from dandelions.core.network.model import ROOT_ID
    from dandelions.core.parsers import load_sequences
    from dandelions.core.phylogeny import ConsensusBuilder

    out = QuietConsole(console, quiet=quiet)
    setup_logging(console, verbose=verbose, quiet=quiet)

    output_format = "parquet" if output.suffix.lower() == ".parquet" else "csv"

    out.print("\n[bold blue]Dandelions Layout[/bold blue]\n")

    try:
        config = load_config(config_file).with_overrides(
            consensus={"seed": seed},
            simulation={"seed": seed},
        )
        sequences = load_sequences(input_file, input_format)

        if edges_file is not None:
            edges = read_edges(edges_file)
            out.print(f"[bold]Edges:[/bold] {edges_file} ({len(edges)} edges)")
        else:
            with spinner_progress("Sampling trees...", console, quiet):
                edges = ConsensusBuilder(config.consensus).build(sequences).edges

        net_cfg = config.network
        network = build_network(
            sequences,
            edges,
            consolidate=net_cfg.consolidate,
            centroid_sigma=net_cfg.centroid_sigma,
            top_n_centroids=net_cfg.top_n_centroids,
            gap_penalty=net_cfg.gap_penalty,
            remove_inferred_leaves=net_cfg.remove_inferred_leaves,
        )

        with spinner_progress(f"Simulating {steps} steps...", console, quiet):
            with ForceSimulation(network, config.simulation) as sim:
                sim.pin_node(ROOT_ID)
                sim.run(steps)
                max_velocity = sim.max_velocity

        output.parent.mkdir(parents=True, exist_ok=True)
        write_dataframe(network_to_dataframe(network), output, output_format)

    except DandelionsError as e:
        report_error(console, e, verbose)
        raise typer.Exit(code=1) from None
    except ValueError as e:
        console.print(f"\n[red]Invalid edge table: {e}[/red]")
        raise typer.Exit(code=1) from None

    out.print(f"[bold]Nodes:[/bold] {len(network)}")
    out.print(f"[bold]Final max velocity:[/bold] {max_velocity:.4g}")
    out.print(f"\n[green]Layout written to {output}[/green]\n")
