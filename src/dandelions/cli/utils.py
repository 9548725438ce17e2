"""
Shared CLI utilities for dandelions commands.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from dandelions.core.exceptions import DandelionsError
from dandelions.models.config import AnalysisConfig


@contextmanager
def spinner_progress(
    description: str,
    console: Console | None = None,
    quiet: bool = False,
) -> Generator[Progress, None, None]:
    """Context manager for spinner-style progress display.

    The spinner is suppressed when quiet mode is enabled.

    Example:
        >>> with spinner_progress("Sampling trees...", console, quiet) as progress:
        ...     pass
    """
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console if not quiet else None,
        disable=quiet,
    ) as progress:
        progress.add_task(description=description, total=None)
        yield progress


def setup_logging(console: Console, verbose: bool = False, quiet: bool = False) -> None:
    """Route package log records through rich.

    Verbose shows DEBUG, quiet shows only warnings and errors.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    logger = logging.getLogger("dandelions")
    logger.handlers.clear()
    handler = RichHandler(console=console, show_path=verbose, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def load_config(path: Path | None) -> AnalysisConfig:
    """Configuration from a YAML file, or defaults when no file is given."""
    if path is None:
        return AnalysisConfig()
    return AnalysisConfig.from_yaml(path)


def report_error(console: Console, error: DandelionsError, verbose: bool = False) -> None:
    """Print a package error with its suggestion."""
    console.print(f"\n[red]Error: {error.message}[/red]")
    if error.suggestion:
        console.print(f"[dim]{error.suggestion}[/dim]")
    if verbose:
        console.print_exception()


class QuietConsole:
    """Console wrapper that suppresses output in quiet mode.

    All other console methods are delegated to the wrapped instance.

    Example:
        >>> qc = QuietConsole(Console(), quiet=True)
        >>> qc.print("This won't be shown")
    """

    def __init__(self, console: Console, quiet: bool = False):
        self._console = console
        self._quiet = quiet

    @property
    def console(self) -> Console:
        """The wrapped Console, for output that ignores quiet mode."""
        return self._console

    def print(self, *args: Any, **kwargs: Any) -> None:
        if not self._quiet:
            self._console.print(*args, **kwargs)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._console, name)
