"""Config commands: show, init."""

from __future__ import annotations

import click
import yaml

from ._common import console, fail
from ..config import config_path, load_config, write_default_config
from ..errors import SafeMirrorError
from ..models import EffectiveConfig


def config_as_dict(config: EffectiveConfig) -> dict:
    """Plain, YAML-friendly view of an EffectiveConfig."""
    data = config.model_dump(mode="json")
    data["skip"] = sorted(config.skip)
    return data


def register_config_commands(main: click.Group) -> None:
    """Register the config command group."""

    @main.group()
    def config():
        """Inspect or create the configuration file.

        The file uses ``key = value`` lines with ``#`` comments.
        Command-line flags override it; ``skip`` lists are merged.
        """

    @config.command("show")
    @click.option("--config", "config_file", default=None, type=click.Path(dir_okay=False), help="Config file path.")
    def config_show(config_file):
        """Print the effective configuration as YAML.

        Examples:

            safemirror config show
        """
        path = config_path(config_file)
        try:
            effective = load_config(path, create=False)
        except SafeMirrorError as exc:
            fail(exc)

        console.print(f"[dim]# {path}{'' if path.exists() else ' (missing, defaults shown)'}[/]")
        console.print(
            yaml.safe_dump(config_as_dict(effective), default_flow_style=False, sort_keys=True),
            highlight=False,
            markup=False,
        )

    @config.command("init")
    @click.option("--config", "config_file", default=None, type=click.Path(dir_okay=False), help="Config file path.")
    def config_init(config_file):
        """Write a commented template config (mode 0600).

        Examples:

            safemirror config init
        """
        path = config_path(config_file)
        if write_default_config(path):
            console.print(f"  [green]Created[/] {path}")
        else:
            console.print(f"  [yellow]Already exists:[/] {path}")

    main.add_command(config)
