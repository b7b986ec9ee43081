"""
Delta preview -- predict what a sync will write before it runs.

Two policies:

  full copy   the backend empties the destination first (cp mirror) or the
              destination does not exist yet: every source file is written.
  delta       everything else: a file is transferred when the destination
              lacks it, or its size or whole-second mtime differs.

Only stat calls are made. Neither tree is modified, and no access times
are touched beyond what the OS does for directory listings.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from .models import DeltaSet, FileRecord

logger = logging.getLogger("safemirror.preview")

FULL_COPY_TITLE = "full copy from source"
DELTA_TITLE = "delta (size+mtime)"

_UNITS = ("B", "KB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB")


def scan_tree(root: Path) -> list[FileRecord]:
    """List every regular file under ``root``, hidden ones included.

    Symlinks and special files are skipped. Records are sorted by their
    slash-separated relative path so output is stable across runs.

    Args:
        root: Directory to walk.

    Returns:
        Sorted FileRecords. Empty if ``root`` does not exist.
    """
    records: list[FileRecord] = []
    if not root.is_dir():
        return records

    stack = [root]
    while stack:
        current = stack.pop()
        try:
            entries = list(os.scandir(current))
        except PermissionError as exc:
            logger.warning("Cannot read %s: %s", current, exc)
            continue
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                stack.append(Path(entry.path))
                continue
            if not entry.is_file(follow_symlinks=False):
                continue
            st = entry.stat(follow_symlinks=False)
            rel = Path(entry.path).relative_to(root).as_posix()
            records.append(FileRecord(rel, st.st_size, int(st.st_mtime)))

    records.sort(key=lambda r: r.relative_path)
    return records


def _differs(record: FileRecord, target: Path) -> bool:
    try:
        st = target.stat()
    except OSError:
        return True
    if not stat.S_ISREG(st.st_mode):
        return True
    return st.st_size != record.size_bytes or int(st.st_mtime) != record.mtime


def compute_delta(source: Path, destination: Path, *, full_copy: bool) -> DeltaSet:
    """Build the DeltaSet for a source/destination pair.

    Args:
        source: Source tree.
        destination: Destination tree; may not exist.
        full_copy: The backend rewrites everything (clears first).

    Returns:
        DeltaSet with source and transfer files in relative-path order.
    """
    source_files = scan_tree(source)

    if full_copy or not destination.exists():
        logger.debug("Full copy preview for %s -> %s", source, destination)
        return DeltaSet(source_files, list(source_files), full_copy=True)

    transfer = [r for r in source_files if _differs(r, destination / r.relative_path)]
    logger.debug(
        "Delta preview %s -> %s: %d of %d files",
        source, destination, len(transfer), len(source_files),
    )
    return DeltaSet(source_files, transfer, full_copy=False)


def preview_title(delta: DeltaSet) -> str:
    return FULL_COPY_TITLE if delta.full_copy else DELTA_TITLE


def human_bytes(size: int) -> str:
    """Render a byte count in whole 1024-steps, e.g. ``543 KB``."""
    value, unit = size, 0
    while value >= 1024 and unit < len(_UNITS) - 1:
        value //= 1024
        unit += 1
    return f"{value} {_UNITS[unit]}"
