"""
Run log -- one JSON line per invocation, append-only.

Each entry records when the run happened, which backend moved which
directories, what the preview predicted, where the backup went and how
the run ended.
"""

from __future__ import annotations

import logging
import socket
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from .models import NO_BACKUP, ExecutorState, SyncOutcome

logger = logging.getLogger("safemirror.runlog")


class RunLogEntry(BaseModel):
    """A single structured run log entry."""

    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    host: str = Field(default_factory=socket.gethostname)
    backend: Optional[str] = None
    mode: Optional[str] = None
    source: Optional[str] = None
    destination: Optional[str] = None
    source_files: Optional[int] = None
    source_bytes: Optional[int] = None
    transfer_files: Optional[int] = None
    transfer_bytes: Optional[int] = None
    backup: str = NO_BACKUP
    dry_run: bool = False
    status: ExecutorState
    detail: str = ""


def entry_from_outcome(outcome: SyncOutcome) -> RunLogEntry:
    request = outcome.request
    return RunLogEntry(
        backend=request.backend.value if request else None,
        mode=request.mode.value if request else None,
        source=str(request.source) if request else None,
        destination=str(request.destination) if request else None,
        source_files=outcome.source_files,
        source_bytes=outcome.source_bytes,
        transfer_files=outcome.transfer_files,
        transfer_bytes=outcome.transfer_bytes,
        backup=outcome.backup_location,
        dry_run=outcome.dry_run,
        status=outcome.state,
        detail=outcome.detail,
    )


def append_run_log(path: Path, outcome: SyncOutcome) -> Optional[RunLogEntry]:
    """Append one line for ``outcome`` to the log at ``path``.

    A log that cannot be written is reported, never fatal.

    Returns:
        The entry written, or None on failure.
    """
    entry = entry_from_outcome(outcome)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(entry.model_dump_json() + "\n")
    except OSError as exc:
        logger.warning("Could not write run log %s: %s", path, exc)
        return None
    return entry


def read_run_log(path: Path) -> list[RunLogEntry]:
    """Parse every entry in a run log, skipping malformed lines."""
    if not path.exists():
        return []
    entries: list[RunLogEntry] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            entries.append(RunLogEntry.model_validate_json(line))
        except ValueError:
            logger.warning("Skipping malformed run log line in %s", path)
    return entries
