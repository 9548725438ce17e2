"""
Main CLI entry point for dandelions.

Provides subcommands for each stage of the analysis:
- tree: Build a consensus tree and its exports from sequences
- layout: Run the force-directed layout of a consensus tree
- config: Write a default configuration file
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich import print as rprint
from rich.console import Console

from dandelions import __version__

app = typer.Typer(
    name="dandelions",
    help="Consensus phylogenetic networks from randomized minimum spanning trees",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        rprint(f"dandelions version {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    Dandelions: consensus trees of closely related sequences.

    Samples many randomized minimum spanning trees over a set of aligned
    nucleotide sequences, optionally with inferred ancestors, and combines
    them into a consensus tree whose edges carry support weights.
    """


@app.command(name="init-config")
def init_config(
    output: Path = typer.Option(
        Path("dandelions.yaml"),
        "--output",
        "-o",
        help="Where to write the configuration file",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite an existing file",
    ),
) -> None:
    """Write the default configuration as YAML."""
    from dandelions.models.config import AnalysisConfig

    if output.exists() and not force:
        console.print(f"[red]Error: {output} already exists (use --force)[/red]")
        raise typer.Exit(code=1) from None

    AnalysisConfig().to_yaml(output)
    console.print(f"[green]Wrote default configuration to {output}[/green]")


# Import subcommands
from dandelions.cli import layout, tree

# Register subcommands
app.add_typer(tree.app, name="tree")
app.add_typer(layout.app, name="layout")


if __name__ == "__main__":
    app()
