"""
Safety rules for a source/destination pair.

Checked in order, first violation wins:

  1. identity   source and destination are the same directory
  2. root       destination is ``/``
  3. nesting    one directory contains the other (by path segment)
  4. sensitive  destination is a top-level system directory; needs
                two explicit confirmations

All rules work on canonical paths so ``..`` and symlinks can't hide
a dangerous pair.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .errors import (
    NestedPathsError,
    RootDestinationError,
    SamePathError,
    SensitiveAreaDeclinedError,
)
from .paths import canonical
from .prompts import Confirmer, confirm

logger = logging.getLogger("safemirror.safety")

SENSITIVE_DIRS = frozenset({
    "etc", "home", "var", "bin", "usr", "lib", "opt", "tmp",
    "srv", "dev", "mnt", "media", "proc", "run", "sys",
})


def is_root(path: Path) -> bool:
    return path.parent == path


def is_nested(a: Path, b: Path) -> bool:
    """True if either path is inside the other, compared segment by segment."""
    return a.is_relative_to(b) or b.is_relative_to(a)


def is_sensitive(path: Path) -> bool:
    """True for single-segment system directories such as ``/etc``."""
    parts = path.parts
    return len(parts) == 2 and is_root(Path(parts[0])) and parts[1] in SENSITIVE_DIRS


def check_structure(source: Path, destination: Path) -> None:
    """Run the three non-interactive rules.

    Raises:
        SamePathError, RootDestinationError, NestedPathsError
    """
    src = canonical(source)
    dst = canonical(destination)
    if src == dst:
        raise SamePathError("Source and destination are the same. Aborting...")
    if is_root(dst):
        raise RootDestinationError("Destination path is '/'. Aborting...")
    if is_nested(src, dst):
        raise NestedPathsError(
            f"Source and destination are nested ({src} / {dst}). Aborting."
        )


def validate_pair(source: Path, destination: Path, confirmer: Confirmer) -> None:
    """Apply all four rules to a pair.

    Raises:
        SamePathError, RootDestinationError, NestedPathsError
        SensitiveAreaDeclinedError: Either confirmation was declined.
        OperationAborted: The operator quit at a confirmation.
    """
    check_structure(source, destination)

    dst = canonical(destination)
    if not is_sensitive(dst):
        return

    logger.warning("Destination is a sensitive directory: %s", dst)
    for question in ("Do you want to continue?", "Are you absolutely sure?"):
        if not confirm(
            confirmer,
            f"Destination is a sensitive directory: {dst}. {question}",
            default=False,
        ):
            raise SensitiveAreaDeclinedError(f"Aborted: {dst} is a sensitive directory")
    logger.info("Sensitive destination %s confirmed twice", dst)
