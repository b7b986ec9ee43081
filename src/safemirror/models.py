"""
Data models shared by every stage of a sync run.

Configuration, requests and records that outlive a single function call
are pydantic models; the high-volume file records are plain dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

NO_BACKUP = "(none)"


class SyncMode(str, Enum):
    """How the destination is reconciled with the source."""

    MIRROR = "mirror"
    COPY = "copy"


class BackendType(str, Enum):
    """Supported transfer tools."""

    CP = "cp"
    RSYNC = "rsync"
    RCLONE = "rclone"


class ExecutorState(str, Enum):
    """Lifecycle of a single sync request."""

    VALIDATED = "validated"
    PREVIEWED = "previewed"
    BACKED_UP = "backed_up"
    EXECUTING = "executing"
    DONE = "done"
    FAILED = "failed"
    ABORTED = "aborted"


class SyncRequest(BaseModel):
    """A validated source/destination pair and how to reconcile them."""

    source: Path
    destination: Path
    mode: SyncMode = SyncMode.MIRROR
    backend: BackendType = BackendType.CP
    options: list[str] = Field(default_factory=list)


@dataclass(frozen=True)
class FileRecord:
    """One regular file found while walking a tree."""

    relative_path: str
    size_bytes: int
    mtime: int


@dataclass
class DeltaSet:
    """What a sync would write, computed without touching either tree."""

    source_files: list[FileRecord] = field(default_factory=list)
    transfer_files: list[FileRecord] = field(default_factory=list)
    full_copy: bool = False

    @property
    def source_count(self) -> int:
        return len(self.source_files)

    @property
    def source_bytes(self) -> int:
        return sum(f.size_bytes for f in self.source_files)

    @property
    def transfer_count(self) -> int:
        return len(self.transfer_files)

    @property
    def transfer_bytes(self) -> int:
        return sum(f.size_bytes for f in self.transfer_files)

    @property
    def transfer_paths(self) -> list[str]:
        return [f.relative_path for f in self.transfer_files]


class BackupRecord(BaseModel):
    """Where the destination was snapshotted before mutation."""

    origin: Path
    backup_path: Path
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class EffectiveConfig(BaseModel):
    """Settings for one invocation after merging every source.

    Attributes:
        tool: Selected backend, or None to ask the operator.
        mode: Mirror (delete extras) or copy (keep extras).
        log_path: Append-only run log, or None to disable.
        skip: Step names to skip (``preview``, ``backup``).
        dry_run: Preview only; nothing is created, backed up or copied.
        no_sudo: Never elevate privileges.
        no_confirm: Answer every prompt with its safe default.
        src: Raw source path, or None to ask.
        dst: Raw destination path, or None to ask.
        extra_args: Extra options appended to each backend's command.
    """

    tool: Optional[BackendType] = None
    mode: SyncMode = SyncMode.MIRROR
    log_path: Optional[Path] = None
    skip: set[str] = Field(default_factory=set)
    dry_run: bool = False
    no_sudo: bool = False
    no_confirm: bool = False
    src: Optional[str] = None
    dst: Optional[str] = None
    extra_args: dict[BackendType, list[str]] = Field(default_factory=dict)


@dataclass(frozen=True)
class PrivilegeContext:
    """What the process may do with elevated rights. Resolved once."""

    has_root: bool
    elevation_command: Optional[tuple[str, ...]] = None

    @property
    def elevation_available(self) -> bool:
        return self.has_root or self.elevation_command is not None


class SyncOutcome(BaseModel):
    """Final report of a run."""

    state: ExecutorState
    request: Optional[SyncRequest] = None
    source_files: Optional[int] = None
    source_bytes: Optional[int] = None
    transfer_files: Optional[int] = None
    transfer_bytes: Optional[int] = None
    backup: Optional[BackupRecord] = None
    dry_run: bool = False
    detail: str = ""

    @property
    def backup_location(self) -> str:
        return str(self.backup.backup_path) if self.backup else NO_BACKUP
