"""Shared utilities for all CLI command modules.

Provides the Rich console instance, logging setup, preview rendering
and the single place where engine errors become exit codes.
"""

from __future__ import annotations

import logging
import sys
from typing import NoReturn, Optional

from rich.console import Console
from rich.panel import Panel

from ..errors import EXIT_INTERRUPTED, OperationAborted, OperationInterrupted, SafeMirrorError
from ..models import DeltaSet
from ..preview import human_bytes, preview_title
from ..prompts import Confirmer, confirm

console = Console()

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(verbose: bool) -> None:
    """Configure root logging once per invocation."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )


def render_preview(delta: DeltaSet) -> Panel:
    """Summary panel for a DeltaSet.

    Args:
        delta: Computed delta.

    Returns:
        Panel: Rich panel with counts and sizes.
    """
    return Panel(
        f"Source files:   [bold]{delta.source_count}[/]\n"
        f"Source size:    {human_bytes(delta.source_bytes)} ({delta.source_bytes} bytes)\n"
        f"Will transfer:  [bold cyan]{delta.transfer_count}[/]\n"
        f"Transfer size:  {human_bytes(delta.transfer_bytes)} ({delta.transfer_bytes} bytes)",
        title=f"Preview: {preview_title(delta)}",
        border_style="cyan",
    )


def make_preview_hook(confirmer: Optional[Confirmer], show_files: bool = False):
    """Build the callback the engine calls with the computed delta.

    The file list is printed when ``show_files`` is set, or when the
    operator asks for it.
    """

    def _show(delta: DeltaSet) -> None:
        console.print()
        console.print(render_preview(delta))
        if delta.transfer_count == 0:
            return
        wanted = show_files or (
            confirmer is not None
            and confirm(confirmer, "Show list of files to transfer?", default=False)
        )
        if wanted:
            for rel in delta.transfer_paths:
                console.print(f"  {rel}", highlight=False, markup=False)

    return _show


def fail(exc: SafeMirrorError) -> NoReturn:
    """Print an engine error and exit with its code."""
    outcome = exc.outcome
    if isinstance(exc, OperationAborted):
        console.print(f"[yellow]{exc}[/]")
    elif isinstance(exc, OperationInterrupted):
        console.print(f"\n[yellow]{exc}[/]")
    else:
        console.print(f"[bold red]Error:[/] {exc}", highlight=False)

    backup = getattr(exc, "backup", None) or (outcome.backup if outcome else None)
    if backup is not None:
        console.print(f"  Previous data backed up to: [cyan]{backup.backup_path}[/]")
    sys.exit(exc.exit_code)


def interrupted() -> NoReturn:
    console.print("\n[yellow]Aborted by user.[/]")
    sys.exit(EXIT_INTERRUPTED)
