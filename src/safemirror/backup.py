"""
Destination snapshot taken right before a sync mutates anything.

The snapshot is a full, metadata-preserving copy of the destination
placed under the temp directory::

    /tmp/<basename>.<YYYYmmddTHHMMSSmmm>.<random>/

It is the only recovery path if the operator regrets the sync or the
backend misbehaves. This module never reads it back or deletes it;
the host's temp cleanup owns its lifetime.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .errors import BackupFailedError
from .models import BackupRecord

logger = logging.getLogger("safemirror.backup")


def backup_prefix(destination: Path, now: Optional[datetime] = None) -> str:
    """Name prefix ``<basename>.<timestamp>.`` for a snapshot directory."""
    moment = now or datetime.now()
    stamp = moment.strftime("%Y%m%dT%H%M%S") + f"{moment.microsecond // 1000:03d}"
    name = destination.name or "root"
    return f"{name}.{stamp}."


def snapshot_destination(
    destination: Path,
    temp_root: Optional[Path] = None,
) -> Optional[BackupRecord]:
    """Copy the destination into a fresh, uniquely named directory.

    Args:
        destination: Directory about to be mutated.
        temp_root: Where snapshots go. Defaults to the system temp dir.

    Returns:
        BackupRecord, or None when the destination does not exist.

    Raises:
        BackupFailedError: The backup area is inside the destination, or
            the copy could not be completed.
    """
    if not destination.exists() and not destination.is_symlink():
        logger.info("No backup: %s does not exist", destination)
        return None

    root = Path(temp_root) if temp_root else Path(tempfile.gettempdir())
    # the snapshot must not land inside the tree being copied
    if root.resolve().is_relative_to(destination.resolve()):
        raise BackupFailedError(
            f"Backup area {root} is inside destination {destination}; "
            "choose another --temp-root or skip the backup"
        )

    try:
        backup_path = Path(tempfile.mkdtemp(prefix=backup_prefix(destination), dir=root))
        shutil.copytree(
            destination,
            backup_path,
            symlinks=True,
            copy_function=shutil.copy2,
            dirs_exist_ok=True,
        )
    except OSError as exc:
        raise BackupFailedError(f"Backup of {destination} failed: {exc}") from exc

    record = BackupRecord(
        origin=destination,
        backup_path=backup_path,
        created_at=datetime.now(timezone.utc),
    )
    logger.info("Backed up %s to %s", destination, backup_path)
    return record
