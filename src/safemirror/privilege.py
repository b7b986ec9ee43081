"""
Least-privilege elevation.

Nothing runs elevated unless the specific action needs it: creating a
directory under an unwritable parent, or clearing an unwritable
destination. The copy itself always runs as the invoking user.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Optional, Sequence

from .errors import ElevationUnavailableError
from .models import PrivilegeContext

logger = logging.getLogger("safemirror.privilege")

ELEVATION_HELPERS = ("sudo", "doas")

Runner = Callable[..., subprocess.CompletedProcess]


def detect_privileges(no_sudo: bool = False) -> PrivilegeContext:
    """Work out once whether and how this process can elevate.

    Args:
        no_sudo: Refuse any elevation helper even if one is installed.

    Returns:
        PrivilegeContext for the rest of the run.
    """
    if os.geteuid() == 0:
        return PrivilegeContext(has_root=True)
    if no_sudo:
        return PrivilegeContext(has_root=False)
    for helper in ELEVATION_HELPERS:
        if shutil.which(helper):
            return PrivilegeContext(has_root=False, elevation_command=(helper,))
    return PrivilegeContext(has_root=False)


def _nearest_existing(path: Path) -> Path:
    current = path
    while not current.exists() and current.parent != current:
        current = current.parent
    return current


class PrivilegeBroker:
    """Runs actions directly or through sudo/doas, whichever is required."""

    def __init__(self, context: PrivilegeContext, runner: Runner = subprocess.run):
        self.context = context
        self.runner = runner
        self._session_ready = False

    def needs_elevation(self, path: Path) -> bool:
        """True if writing to ``path`` requires rights we do not hold."""
        if self.context.has_root:
            return False
        return not os.access(_nearest_existing(path), os.W_OK)

    def _prime_session(self) -> None:
        # sudo caches credentials; validate once so later calls don't re-prompt
        helper = self.context.elevation_command
        if self._session_ready or not helper or helper[0] != "sudo":
            self._session_ready = True
            return
        result = self.runner([*helper, "-v"], check=False)
        if result.returncode != 0:
            raise ElevationUnavailableError("sudo authentication failed or was declined")
        self._session_ready = True

    def run(
        self,
        argv: Sequence[str],
        *,
        elevate: bool,
        **kwargs,
    ) -> subprocess.CompletedProcess:
        """Run a command, elevated only when ``elevate`` is set.

        Extra keyword arguments go to the runner (``subprocess.run``).

        Raises:
            ElevationUnavailableError: Elevation is needed but impossible.
        """
        command = list(argv)
        if elevate and not self.context.has_root:
            if self.context.elevation_command is None:
                raise ElevationUnavailableError(
                    f"'{command[0]}' needs elevated rights and no sudo/doas is available"
                )
            self._prime_session()
            command = [*self.context.elevation_command, *command]
            logger.info("Elevating: %s", " ".join(command))
        return self.runner(command, check=False, text=True, **kwargs)

    def make_directory(self, path: Path) -> None:
        """Create ``path`` and its parents.

        Raises:
            ElevationUnavailableError: Parent is unwritable and we can't elevate.
            OSError: Creation failed.
        """
        if not self.needs_elevation(path):
            path.mkdir(parents=True, exist_ok=True)
            return
        result = self.run(["mkdir", "-p", "--", str(path)], elevate=True, capture_output=True)
        if result.returncode != 0:
            raise OSError(f"Cannot create '{path}': {(result.stderr or '').strip()}")

    def clear_directory(self, path: Path) -> None:
        """Remove every entry inside ``path``, dotfiles included.

        The directory itself is kept.
        """
        entries = sorted(path.iterdir())
        if not entries:
            return
        if not self.needs_elevation(path):
            for entry in entries:
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
            return
        result = self.run(
            ["rm", "-rf", "--", *(str(e) for e in entries)],
            elevate=True,
            capture_output=True,
        )
        if result.returncode != 0:
            raise OSError(f"Cannot clean '{path}': {(result.stderr or '').strip()}")


def make_broker(no_sudo: bool = False, runner: Optional[Runner] = None) -> PrivilegeBroker:
    """Detect privileges and return a ready broker."""
    context = detect_privileges(no_sudo=no_sudo)
    logger.debug("Privilege context: %s", context)
    return PrivilegeBroker(context, runner=runner or subprocess.run)
