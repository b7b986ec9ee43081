"""
Sync engine -- one source/destination pair, start to finish.

    config -> resolve paths -> safety rules -> backend check
           -> preview -> backup -> transfer -> run log

Everything a run depends on (config, privileges, prompts, cancellation)
is passed in; nothing is read from module globals.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .backends import SyncBackend, create_backend
from .errors import (
    BackendUnavailableError,
    OperationAborted,
    OperationInterrupted,
    PathNotFoundError,
    SafeMirrorError,
)
from .executor import CancelToken, PreviewHook, SyncExecutor
from .models import BackendType, EffectiveConfig, ExecutorState, SyncOutcome, SyncRequest
from .paths import resolve_directory
from .preflight import auto_install_tool, check_tool
from .privilege import PrivilegeBroker
from .prompts import Confirmer, confirm
from .runlog import append_run_log
from .safety import validate_pair

logger = logging.getLogger("safemirror.engine")

DEFAULT_BACKEND = BackendType.CP


def ensure_backend(
    backend: SyncBackend,
    confirmer: Confirmer,
    broker: PrivilegeBroker,
    dry_run: bool = False,
) -> None:
    """Make sure the backend's tool is installed, offering to install it.

    Raises:
        BackendUnavailableError: Missing and not installed.
    """
    if backend.available():
        return
    if dry_run:
        logger.warning("DRY-RUN: %s is not installed; would install it", backend.tool)
        return

    check = check_tool(backend.backend_type)
    if check.installed:
        return
    if not confirm(confirmer, f"{backend.tool} is not installed. Install it now?", default=True):
        raise BackendUnavailableError(f"{backend.tool} is not installed; choose another tool")
    if not auto_install_tool(check, broker):
        raise BackendUnavailableError(f"Could not install {check.package}")


def resolve_request(
    config: EffectiveConfig,
    confirmer: Confirmer,
    broker: PrivilegeBroker,
) -> SyncRequest:
    """Resolve and validate the configured pair into a SyncRequest.

    Raises:
        PathNotFoundError: Source missing, or destination missing and not created.
        ValidationError: A safety rule failed.
    """
    if not config.src:
        raise PathNotFoundError("No source directory given")
    if not config.dst:
        raise PathNotFoundError("No destination directory given")

    source = resolve_directory(config.src)
    destination = resolve_directory(
        config.dst,
        create=True,
        confirmer=confirmer,
        broker=broker,
        dry_run=config.dry_run,
    )
    validate_pair(source, destination, confirmer)

    backend_type = config.tool or DEFAULT_BACKEND
    return SyncRequest(
        source=source,
        destination=destination,
        mode=config.mode,
        backend=backend_type,
        options=config.extra_args.get(backend_type, []),
    )


def _failure_state(exc: BaseException) -> ExecutorState:
    if isinstance(exc, (OperationAborted, OperationInterrupted)):
        return ExecutorState.ABORTED
    return ExecutorState.FAILED


def _failure_outcome(
    exc: SafeMirrorError,
    config: EffectiveConfig,
    request: Optional[SyncRequest],
    executor: Optional[SyncExecutor],
) -> SyncOutcome:
    if executor is not None:
        outcome = executor.outcome(str(exc))
    else:
        outcome = SyncOutcome(
            state=_failure_state(exc),
            request=request,
            dry_run=config.dry_run,
            detail=str(exc),
        )
    exc.outcome = outcome
    return outcome


def run_sync(
    config: EffectiveConfig,
    confirmer: Confirmer,
    broker: PrivilegeBroker,
    *,
    cancel: Optional[CancelToken] = None,
    on_preview: Optional[PreviewHook] = None,
    temp_root: Optional[Path] = None,
) -> SyncOutcome:
    """Run one sync as configured.

    Args:
        config: Effective configuration; ``src``/``dst`` must be set.
        confirmer: Answers every interactive question.
        broker: Privilege broker built from the run's PrivilegeContext.
        cancel: Token the caller may trip to stop between phases.
        on_preview: Receives the DeltaSet for display.
        temp_root: Where the backup snapshot goes.

    Returns:
        SyncOutcome in state DONE.

    Raises:
        SafeMirrorError: Any validation or operational failure, including
            OperationAborted and OperationInterrupted. A KeyboardInterrupt
            is re-raised as OperationInterrupted.
    """
    executor: Optional[SyncExecutor] = None
    request: Optional[SyncRequest] = None
    outcome: Optional[SyncOutcome] = None
    try:
        request = resolve_request(config, confirmer, broker)
        backend = create_backend(request.backend, request.options)
        ensure_backend(backend, confirmer, broker, dry_run=config.dry_run)

        executor = SyncExecutor(
            request,
            backend,
            broker,
            confirmer,
            cancel=cancel,
            skip=config.skip,
            dry_run=config.dry_run,
            temp_root=temp_root,
            on_preview=on_preview,
        )
        outcome = executor.run()
        return outcome
    except KeyboardInterrupt:
        # Ctrl+C at a prompt before the executor took over
        if cancel is not None:
            cancel.cancel()
        stop = OperationInterrupted()
        outcome = _failure_outcome(stop, config, request, executor)
        raise stop from None
    except SafeMirrorError as exc:
        outcome = _failure_outcome(exc, config, request, executor)
        raise
    finally:
        if config.log_path and outcome is not None:
            append_run_log(config.log_path, outcome)
