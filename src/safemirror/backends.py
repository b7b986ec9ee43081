"""
Transfer backends -- the tools that actually move bytes.

Each backend turns a SyncRequest into an argument list. Nothing is
ever joined into a shell string.

cp:     clearing backend. Mirror empties the destination, then copies
        the full source. Copy mode copies over what is there.
rsync:  delta-aware. Mirror adds --delete.
rclone: delta-aware. Mirror uses ``rclone sync``, copy ``rclone copy``.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from .errors import ConfigError
from .models import BackendType, SyncMode, SyncRequest
from .privilege import PrivilegeBroker

logger = logging.getLogger("safemirror.backends")


def check_option_tokens(owner: str, tokens: list[str]) -> None:
    """Check that tokens are options, each optionally followed by one value.

    A bare word is accepted only right after an option without ``=``,
    where it is that option's value. ``--`` is never accepted.

    Raises:
        ConfigError: A token would be read as an operand.
    """
    takes_value = False
    for token in tokens:
        if token == "--":
            raise ConfigError(f"{owner}: '--' is not allowed in options")
        if token.startswith("-"):
            takes_value = "=" not in token
            continue
        if not takes_value:
            raise ConfigError(f"{owner}: {token!r} is not an option")
        takes_value = False


@dataclass
class Command:
    """A program, optional subcommand, options, then ``--`` and operands."""

    program: str
    subcommand: Optional[str] = None
    options: list[str] = field(default_factory=list)
    operands: list[str] = field(default_factory=list)

    def add(self, *options: str) -> "Command":
        self.options.extend(options)
        return self

    def validate(self) -> None:
        """Reject anything that could be read as an operand or end-of-options.

        Raises:
            ConfigError: Bad option tokens or no operands.
        """
        check_option_tokens(self.program, self.options)
        if not self.operands:
            raise ConfigError(f"{self.program}: no operands")

    def argv(self) -> list[str]:
        self.validate()
        head = [self.program, self.subcommand] if self.subcommand else [self.program]
        return [*head, *self.options, "--", *self.operands]


class SyncBackend(ABC):
    """Abstract transfer backend."""

    backend_type: BackendType
    tool: str

    def __init__(self, extra_args: Optional[list[str]] = None):
        self.extra_args = list(extra_args or [])

    @property
    def name(self) -> str:
        return self.backend_type.value

    def available(self) -> bool:
        """Check if the tool is on PATH."""
        return shutil.which(self.tool) is not None

    def clears_destination(self, mode: SyncMode) -> bool:
        """True if every source file gets rewritten in this mode."""
        return False

    @abstractmethod
    def command(self, request: SyncRequest) -> Command:
        """Build the transfer command for a request."""

    def execute(
        self, request: SyncRequest, broker: PrivilegeBroker
    ) -> subprocess.CompletedProcess:
        """Run the transfer unprivileged.

        stdout (progress) goes to the terminal; stderr is captured so it
        can be reported verbatim on failure.
        """
        argv = self.command(request).argv()
        logger.info("Running: %s", " ".join(argv))
        return broker.run(argv, elevate=False, stderr=subprocess.PIPE)


class PlainBackend(SyncBackend):
    """rm + cp."""

    backend_type = BackendType.CP
    tool = "cp"

    def clears_destination(self, mode: SyncMode) -> bool:
        return mode is SyncMode.MIRROR

    def command(self, request: SyncRequest) -> Command:
        cmd = Command("cp").add("-a", *self.extra_args)
        cmd.operands = [f"{request.source}/.", f"{request.destination}/"]
        return cmd

    def execute(
        self, request: SyncRequest, broker: PrivilegeBroker
    ) -> subprocess.CompletedProcess:
        if self.clears_destination(request.mode):
            logger.info("Clearing %s before copy", request.destination)
            broker.clear_directory(request.destination)
        return super().execute(request, broker)


class RsyncBackend(SyncBackend):
    """rsync archive copy; mirror deletes extraneous destination files."""

    backend_type = BackendType.RSYNC
    tool = "rsync"

    def command(self, request: SyncRequest) -> Command:
        cmd = Command("rsync").add("-aH")
        if request.mode is SyncMode.MIRROR:
            cmd.add("--delete")
        cmd.add("--info=progress2", *self.extra_args)
        cmd.operands = [f"{request.source}/", f"{request.destination}/"]
        return cmd


class RcloneBackend(SyncBackend):
    """rclone sync (mirror) or rclone copy."""

    backend_type = BackendType.RCLONE
    tool = "rclone"

    def command(self, request: SyncRequest) -> Command:
        verb = "sync" if request.mode is SyncMode.MIRROR else "copy"
        cmd = Command("rclone", subcommand=verb).add(
            "--progress", "--copy-links", "--local-no-check-updated",
            *self.extra_args,
        )
        cmd.operands = [str(request.source), str(request.destination)]
        return cmd


_BACKENDS = {
    BackendType.CP: PlainBackend,
    BackendType.RSYNC: RsyncBackend,
    BackendType.RCLONE: RcloneBackend,
}


def create_backend(
    backend_type: BackendType, extra_args: Optional[list[str]] = None
) -> SyncBackend:
    """Factory function to create the appropriate backend.

    Raises:
        ValueError: If backend type is not supported.
    """
    factory = _BACKENDS.get(backend_type)
    if not factory:
        raise ValueError(f"Unsupported backend: {backend_type}")
    return factory(extra_args)
