"""
Error taxonomy for the sync engine.

Every failure carries the process exit code it maps to, so the CLI
can translate any of them in one place.
"""

from __future__ import annotations

from typing import Optional

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


class SafeMirrorError(Exception):
    """Base class for all operational failures.

    Attributes:
        outcome: The SyncOutcome at the time of failure, attached by the
            engine so callers can still report the backup location.
    """

    exit_code = EXIT_ERROR
    outcome = None


class ConfigError(SafeMirrorError):
    """Raised when the configuration file or an override is malformed."""


class PathNotFoundError(SafeMirrorError):
    """Raised when a directory does not exist and was not created."""


class ValidationError(SafeMirrorError):
    """A source/destination pair failed a safety rule."""


class SamePathError(ValidationError):
    """Source and destination resolve to the same directory."""


class RootDestinationError(ValidationError):
    """Destination is the filesystem root."""


class NestedPathsError(ValidationError):
    """One path lives inside the other."""


class SensitiveAreaDeclinedError(ValidationError):
    """Operator declined to write into a top-level system directory."""


class ElevationUnavailableError(SafeMirrorError):
    """A privileged action was needed but cannot be elevated."""


class BackupFailedError(SafeMirrorError):
    """The destination snapshot could not be written."""


class BackendUnavailableError(SafeMirrorError):
    """The selected transfer tool is missing and was not installed."""


class BackendExecutionFailedError(SafeMirrorError):
    """The transfer tool exited with a nonzero status."""

    def __init__(self, tool: str, returncode: int, stderr: str = ""):
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr
        message = f"{tool} exited with status {returncode}"
        if stderr.strip():
            message += f": {stderr.strip()}"
        super().__init__(message)


class OperationAborted(SafeMirrorError):
    """Operator chose to stop. Not an error."""

    exit_code = EXIT_OK


class OperationInterrupted(SafeMirrorError):
    """Operator interrupted a running phase.

    Attributes:
        backup: The BackupRecord made before the interrupt, if any.
    """

    exit_code = EXIT_INTERRUPTED

    def __init__(self, message: str = "Aborted by user.", backup: Optional[object] = None):
        super().__init__(message)
        self.backup = backup
