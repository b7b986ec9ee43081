"""Environment commands: tools, history."""

from __future__ import annotations

from pathlib import Path

import click

from ._common import console, fail
from ..config import config_path, load_config
from ..errors import SafeMirrorError
from ..preflight import check_all
from ..runlog import read_run_log

from rich.table import Table


def register_tools_commands(main: click.Group) -> None:
    """Register the tools and history commands."""

    @main.command("tools")
    def tools():
        """Show which transfer tools are installed.

        Examples:

            safemirror tools
        """
        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Backend", style="cyan")
        table.add_column("Status")
        table.add_column("Detail", style="dim")

        for check in check_all():
            if check.installed:
                table.add_row(check.name, "[green]found[/]", check.version)
            else:
                hint = " ".join(check.install_cmd) or "no package manager found"
                table.add_row(check.name, "[red]missing[/]", hint)

        console.print()
        console.print(table)
        console.print()

    @main.command("history")
    @click.option("--log", "log_file", default=None, type=click.Path(dir_okay=False), help="Run log to read.")
    @click.option("--config", "config_file", default=None, type=click.Path(dir_okay=False), help="Config file path.")
    @click.option("--limit", "-n", default=10, show_default=True, help="Number of runs to show.")
    def history(log_file, config_file, limit):
        """List recent runs from the run log.

        Examples:

            safemirror history -n 5
        """
        if log_file:
            path = Path(log_file).expanduser()
        else:
            try:
                path = load_config(config_path(config_file), create=False).log_path
            except SafeMirrorError as exc:
                fail(exc)
        if path is None:
            console.print("\n[dim]No run log configured (set 'log' or pass --log).[/]\n")
            return

        entries = read_run_log(path)[-limit:] if limit > 0 else read_run_log(path)
        if not entries:
            console.print("\n[dim]No runs recorded.[/]\n")
            return

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("When", style="dim")
        table.add_column("Backend", style="cyan")
        table.add_column("Destination")
        table.add_column("Transfer", justify="right")
        table.add_column("Status")

        for e in reversed(entries):
            transfer = "-" if e.transfer_files is None else f"{e.transfer_files}/{e.source_files}"
            color = {"done": "green", "failed": "red", "aborted": "yellow"}.get(e.status.value, "white")
            table.add_row(
                e.timestamp[:19], e.backend or "-", e.destination or "-",
                transfer, f"[{color}]{e.status.value}[/]",
            )

        console.print(f"\n[bold]{len(entries)}[/] run(s):\n")
        console.print(table)
        console.print()
