"""
Sync executor -- drives one validated request through its phases.

    VALIDATED -> PREVIEWED -> BACKED_UP -> EXECUTING -> DONE | FAILED
                 PREVIEWED -> DONE                    (dry run)
    any non-terminal state -> ABORTED                  (operator stop)

A CancelToken is checked before every phase. Nothing is rolled back:
when the transfer fails or is interrupted, the backup location is
reported and restoring is up to the operator.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from .backends import SyncBackend
from .backup import snapshot_destination
from .errors import (
    BackendExecutionFailedError,
    OperationAborted,
    OperationInterrupted,
    SafeMirrorError,
)
from .models import BackupRecord, DeltaSet, ExecutorState, SyncOutcome, SyncRequest
from .preview import compute_delta
from .privilege import PrivilegeBroker
from .prompts import Confirmer, confirm

logger = logging.getLogger("safemirror.executor")

TRANSITIONS = {
    ExecutorState.VALIDATED: {ExecutorState.PREVIEWED},
    ExecutorState.PREVIEWED: {ExecutorState.BACKED_UP, ExecutorState.DONE},
    ExecutorState.BACKED_UP: {ExecutorState.EXECUTING},
    ExecutorState.EXECUTING: {ExecutorState.DONE, ExecutorState.FAILED},
}
TERMINAL = {ExecutorState.DONE, ExecutorState.FAILED, ExecutorState.ABORTED}

PreviewHook = Callable[[DeltaSet], None]


class CancelToken:
    """Cooperative cancellation flag shared by the caller and the executor."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self, backup: Optional[BackupRecord] = None) -> None:
        if self._cancelled:
            raise OperationInterrupted(backup=backup)


class SyncExecutor:
    """Runs preview, backup and transfer for a request that passed validation.

    Args:
        request: Validated SyncRequest.
        backend: Backend matching ``request.backend``.
        broker: Privilege broker for destination clearing.
        confirmer: Answers the "proceed?" question.
        cancel: Token checked between phases.
        skip: Step names to skip (``preview``, ``backup``).
        dry_run: Stop after the preview; nothing is changed.
        temp_root: Where the backup snapshot goes.
        on_preview: Called with the DeltaSet before asking to proceed.
    """

    def __init__(
        self,
        request: SyncRequest,
        backend: SyncBackend,
        broker: PrivilegeBroker,
        confirmer: Confirmer,
        *,
        cancel: Optional[CancelToken] = None,
        skip: frozenset[str] | set[str] = frozenset(),
        dry_run: bool = False,
        temp_root: Optional[Path] = None,
        on_preview: Optional[PreviewHook] = None,
    ):
        self.request = request
        self.backend = backend
        self.broker = broker
        self.confirmer = confirmer
        self.cancel = cancel or CancelToken()
        self.skip = frozenset(skip)
        self.dry_run = dry_run
        self.temp_root = temp_root
        self.on_preview = on_preview

        self.state = ExecutorState.VALIDATED
        self.delta: Optional[DeltaSet] = None
        self.backup_record: Optional[BackupRecord] = None

    def _advance(self, state: ExecutorState) -> None:
        if state not in TRANSITIONS.get(self.state, set()):
            raise RuntimeError(f"Illegal transition {self.state.value} -> {state.value}")
        logger.debug("State %s -> %s", self.state.value, state.value)
        self.state = state

    def _stop(self, state: ExecutorState) -> None:
        if self.state not in TERMINAL:
            logger.debug("State %s -> %s", self.state.value, state.value)
            self.state = state

    # -- phases -------------------------------------------------------------

    def preview(self) -> Optional[DeltaSet]:
        """Compute and report the delta, then ask whether to proceed.

        Dry runs always preview and never ask.

        Raises:
            OperationAborted: The operator declined to proceed.
        """
        if "preview" in self.skip and not self.dry_run:
            logger.info("Preview skipped")
            self._advance(ExecutorState.PREVIEWED)
            return None

        full_copy = self.backend.clears_destination(self.request.mode)
        self.delta = compute_delta(
            self.request.source, self.request.destination, full_copy=full_copy
        )
        if self.on_preview:
            self.on_preview(self.delta)

        if not self.dry_run and not confirm(self.confirmer, "Proceed with copy?", default=True):
            raise OperationAborted("Aborted before copy.")

        self._advance(ExecutorState.PREVIEWED)
        return self.delta

    def backup(self) -> Optional[BackupRecord]:
        """Snapshot the destination unless the step is skipped.

        Raises:
            BackupFailedError: The snapshot could not be written.
        """
        if "backup" in self.skip:
            logger.warning("Backup skipped: %s will not be snapshotted", self.request.destination)
        else:
            self.backup_record = snapshot_destination(self.request.destination, self.temp_root)
        self._advance(ExecutorState.BACKED_UP)
        return self.backup_record

    def execute(self) -> None:
        """Hand the request to the backend.

        Raises:
            BackendExecutionFailedError: The tool exited nonzero or could
                not be started.
        """
        self._advance(ExecutorState.EXECUTING)
        try:
            result = self.backend.execute(self.request, self.broker)
        except OSError as exc:
            raise BackendExecutionFailedError(self.backend.tool, -1, str(exc)) from exc

        if result.returncode != 0:
            raise BackendExecutionFailedError(
                self.backend.tool, result.returncode, result.stderr or ""
            )
        self._advance(ExecutorState.DONE)

    # -- driver -------------------------------------------------------------

    def run(self) -> SyncOutcome:
        """Run every phase in order.

        Returns:
            SyncOutcome in state DONE.

        Raises:
            OperationAborted: Operator declined; state ABORTED.
            OperationInterrupted: Cancelled or Ctrl+C; state ABORTED.
            SafeMirrorError: Any failure; state FAILED.
        """
        try:
            self.cancel.raise_if_cancelled()
            self.preview()
            if self.dry_run:
                self._advance(ExecutorState.DONE)
                return self.outcome("DRY-RUN: no changes made.")

            self.cancel.raise_if_cancelled()
            self.backup()
            self.cancel.raise_if_cancelled(self.backup_record)
            self.execute()
        except KeyboardInterrupt:
            self.cancel.cancel()
            self._stop(ExecutorState.ABORTED)
            raise OperationInterrupted(backup=self.backup_record) from None
        except OperationInterrupted as exc:
            exc.backup = self.backup_record
            self._stop(ExecutorState.ABORTED)
            raise
        except OperationAborted:
            self._stop(ExecutorState.ABORTED)
            raise
        except SafeMirrorError:
            self._stop(ExecutorState.FAILED)
            raise

        return self.outcome("The task was completed successfully.")

    def outcome(self, detail: str = "") -> SyncOutcome:
        """Snapshot of where this executor stands."""
        delta = self.delta
        return SyncOutcome(
            state=self.state,
            request=self.request,
            source_files=delta.source_count if delta else None,
            source_bytes=delta.source_bytes if delta else None,
            transfer_files=delta.transfer_count if delta else None,
            transfer_bytes=delta.transfer_bytes if delta else None,
            backup=self.backup_record,
            dry_run=self.dry_run,
            detail=detail,
        )
