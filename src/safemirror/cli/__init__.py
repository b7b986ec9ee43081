"""
safemirror CLI — guarded directory mirroring from the command line.

Each command group lives in its own module and is attached to the
main Click group through a register function.

Entry point: safemirror.cli:main
"""

from __future__ import annotations

import click

from .. import __version__
from ._common import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="safemirror")
@click.option("--verbose", "-v", is_flag=True, help="Log every step to stderr.")
def main(verbose: bool):
    """Mirror or copy a directory tree, safely.

    Validates the pair, previews the change, backs up the destination,
    then hands off to cp, rsync or rclone.
    """
    setup_logging(verbose)


# ---------------------------------------------------------------------------
# Register all command groups/commands from modular files
# ---------------------------------------------------------------------------

from .run import register_run_commands
from .config_cmd import register_config_commands
from .tools import register_tools_commands

register_run_commands(main)
register_config_commands(main)
register_tools_commands(main)
