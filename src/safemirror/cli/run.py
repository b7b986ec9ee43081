"""Sync commands: run, preview."""

from __future__ import annotations

import functools
from pathlib import Path
from typing import Optional

import click

from ._common import console, fail, interrupted, make_preview_hook
from ..config import config_path, load_config
from ..engine import run_sync
from ..errors import ConfigError, SafeMirrorError
from ..executor import CancelToken
from ..models import BackendType, EffectiveConfig, SyncOutcome
from ..privilege import make_broker
from ..prompts import AutoConfirmer, ConsoleConfirmer

from rich.panel import Panel

TOOL_MENU = {
    1: BackendType.CP,
    2: BackendType.RSYNC,
    3: BackendType.RCLONE,
}


def _sync_options(func):
    """Options shared by ``run`` and ``preview``."""
    options = [
        click.option("--src", "-s", default=None, help="Source directory."),
        click.option("--dst", "-d", default=None, help="Destination directory."),
        click.option(
            "--tool", "-t", default=None,
            type=click.Choice([b.value for b in BackendType], case_sensitive=False),
            help="Backend: cp, rsync or rclone.",
        ),
        click.option("--copy", "copy_mode", is_flag=True, help="Copy mode: keep files only present at the destination."),
        click.option("--skip", default=None, help="Comma-separated steps to skip: preview,backup."),
        click.option("--no-sudo", is_flag=True, help="Never elevate privileges."),
        click.option("--no-backup", is_flag=True, help="Do not snapshot the destination first."),
        click.option("--no-confirm", is_flag=True, help="Take the safe default for every prompt."),
        click.option("--list-files", is_flag=True, help="Print every file that will be transferred."),
        click.option("--log", "log_file", default=None, type=click.Path(dir_okay=False), help="Append a run record to this file."),
        click.option("--config", "config_file", default=None, type=click.Path(dir_okay=False), help="Config file path."),
        click.option("--temp-root", default=None, type=click.Path(file_okay=False), help="Where destination backups are written."),
    ]
    return functools.reduce(lambda f, opt: opt(f), reversed(options), func)


def _overrides(
    src, dst, tool, copy_mode, skip, no_sudo, no_backup, no_confirm, log_file, dry_run,
) -> dict:
    skip_steps = [s for s in (skip or "").split(",") if s.strip()]
    if no_backup:
        skip_steps.append("backup")
    return {
        "src": src,
        "dst": dst,
        "tool": tool,
        "mode": "copy" if copy_mode else None,
        "skip": ",".join(skip_steps) or None,
        "dry_run": True if dry_run else None,
        "no_sudo": True if no_sudo else None,
        "no_confirm": True if no_confirm else None,
        "log": log_file,
    }


def _ask_missing(config: EffectiveConfig) -> EffectiveConfig:
    """Prompt for whatever the config leaves open."""
    updates: dict = {}
    if not config.src:
        if config.no_confirm:
            raise ConfigError("No source directory given (use --src)")
        updates["src"] = click.prompt("Enter source directory")
    if not config.dst:
        if config.no_confirm:
            raise ConfigError("No destination directory given (use --dst)")
        updates["dst"] = click.prompt("Enter destination directory")
    if config.tool is None and not config.no_confirm:
        console.print("Choose copy tool:")
        console.print("  1) Standard (cp + rm)")
        console.print("  2) rsync")
        console.print("  3) rclone")
        choice = click.prompt("Select", type=click.IntRange(1, 3), default=1)
        updates["tool"] = TOOL_MENU[choice]
    return config.model_copy(update=updates) if updates else config


def _report(outcome: SyncOutcome) -> None:
    if outcome.dry_run:
        console.print(f"\n[yellow]{outcome.detail}[/]\n")
        return
    console.print(Panel(
        f"[bold green]{outcome.detail}[/]\n"
        f"Backend: {outcome.request.backend.value} ({outcome.request.mode.value})\n"
        f"Source: [cyan]{outcome.request.source}[/]\n"
        f"Destination: [cyan]{outcome.request.destination}[/]\n"
        f"Previous data backed up to: [cyan]{outcome.backup_location}[/]",
        title="Sync Complete",
        border_style="green",
    ))


def _execute(
    *,
    dry_run: bool,
    list_files: bool,
    config_file: Optional[str],
    temp_root: Optional[str],
    **options,
) -> None:
    cancel = CancelToken()
    try:
        config = load_config(
            config_path(config_file),
            _overrides(dry_run=dry_run, **options),
            create=config_file is None,
        )
        config = _ask_missing(config)

        confirmer = AutoConfirmer() if config.no_confirm else ConsoleConfirmer(console)
        broker = make_broker(no_sudo=config.no_sudo)
        hook = make_preview_hook(
            None if config.no_confirm else confirmer, show_files=list_files
        )

        outcome = run_sync(
            config,
            confirmer,
            broker,
            cancel=cancel,
            on_preview=hook,
            temp_root=Path(temp_root).expanduser() if temp_root else None,
        )
    except KeyboardInterrupt:
        cancel.cancel()
        interrupted()
    except SafeMirrorError as exc:
        fail(exc)

    _report(outcome)


def register_run_commands(main: click.Group) -> None:
    """Register the run and preview commands."""

    @main.command("run")
    @_sync_options
    @click.option("--dry-run", is_flag=True, help="Preview only: create, back up and copy nothing.")
    def run_cmd(**options):
        """Mirror (or copy) a source directory onto a destination.

        Safety checks run first (same path, '/', nesting, sensitive
        system directories). A preview shows what will change, the
        destination is backed up to the temp directory, then the chosen
        backend runs.

        Examples:

            safemirror run -s ~/photos -d /mnt/usb/photos -t rsync

            safemirror run --copy -s ./site -d /srv/www/site --dry-run
        """
        _execute(**options)

    @main.command("preview")
    @_sync_options
    def preview_cmd(**options):
        """Show what a sync would transfer, without changing anything.

        Same as ``run --dry-run``.

        Examples:

            safemirror preview -s ~/photos -d /mnt/usb/photos -t rsync --list-files
        """
        _execute(dry_run=True, **options)
