"""
Preflight tool checks: is the transfer tool there, and can we install it?

Checks for:
  - cp     (coreutils, used with rm for the plain backend)
  - rsync
  - rclone

Each check returns a result with:
  - Whether the tool is installed
  - Current version (if installed)
  - The install command for the detected package manager

Installs go through the PrivilegeBroker, so they elevate with
sudo/doas only when the package manager needs it (everything but brew).
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .models import BackendType
from .privilege import PrivilegeBroker

logger = logging.getLogger("safemirror.preflight")


class ToolStatus(str, Enum):
    """Status of a system tool."""
    INSTALLED = "installed"
    MISSING = "missing"


@dataclass
class ToolCheck:
    """Result of checking a single transfer tool."""

    name: str
    binary: str
    package: str
    status: ToolStatus
    version: str = ""
    install_cmd: list[str] = field(default_factory=list)
    needs_elevation: bool = True

    @property
    def installed(self) -> bool:
        """Whether the tool is installed."""
        return self.status == ToolStatus.INSTALLED


# binary, package name per backend
TOOLS = {
    BackendType.CP: ("cp", "coreutils"),
    BackendType.RSYNC: ("rsync", "rsync"),
    BackendType.RCLONE: ("rclone", "rclone"),
}

# manager -> (install argv prefix, needs elevation)
PKG_MANAGERS = {
    "apt-get": (["env", "DEBIAN_FRONTEND=noninteractive", "apt-get", "install", "-y"], True),
    "apt": (["env", "DEBIAN_FRONTEND=noninteractive", "apt", "install", "-y"], True),
    "dnf": (["dnf", "-y", "install"], True),
    "yum": (["yum", "-y", "install"], True),
    "zypper": (["zypper", "--non-interactive", "install", "--no-confirm"], True),
    "pacman": (["pacman", "-S", "--noconfirm", "--needed"], True),
    "apk": (["apk", "add", "--no-cache"], True),
    "brew": (["brew", "install"], False),
}


# ---------------------------------------------------------------------------
# Platform detection
# ---------------------------------------------------------------------------

def detect_pkg_manager() -> Optional[str]:
    """First package manager found on PATH, in preference order."""
    for mgr in PKG_MANAGERS:
        if shutil.which(mgr):
            return mgr
    return None


def _tool_version(binary: str) -> str:
    try:
        result = subprocess.run(
            [binary, "--version"],
            capture_output=True, text=True, timeout=5,
        )
        if result.returncode == 0:
            return result.stdout.strip().split("\n")[0][:60]
    except (OSError, subprocess.TimeoutExpired):
        pass
    return ""


# ---------------------------------------------------------------------------
# Tool checks
# ---------------------------------------------------------------------------

def check_tool(backend: BackendType) -> ToolCheck:
    """Check whether a backend's tool is installed.

    Args:
        backend: Which backend to check.

    Returns:
        ToolCheck, with an install command when missing and a package
        manager was found.
    """
    binary, package = TOOLS[backend]
    present = shutil.which(binary) is not None
    if backend is BackendType.CP:
        present = present and shutil.which("rm") is not None

    if present:
        return ToolCheck(
            name=backend.value,
            binary=binary,
            package=package,
            status=ToolStatus.INSTALLED,
            version=_tool_version(binary),
        )

    mgr = detect_pkg_manager()
    install_cmd: list[str] = []
    needs_elevation = True
    if mgr:
        prefix, needs_elevation = PKG_MANAGERS[mgr]
        install_cmd = [*prefix, package]

    return ToolCheck(
        name=backend.value,
        binary=binary,
        package=package,
        status=ToolStatus.MISSING,
        install_cmd=install_cmd,
        needs_elevation=needs_elevation,
    )


def check_all() -> list[ToolCheck]:
    """Check every backend tool."""
    return [check_tool(b) for b in BackendType]


# ---------------------------------------------------------------------------
# Auto-install
# ---------------------------------------------------------------------------

def auto_install_tool(check: ToolCheck, broker: PrivilegeBroker) -> bool:
    """Attempt to install a missing tool with the detected package manager.

    Args:
        check: ToolCheck with install_cmd populated.
        broker: Elevates the package manager when it needs root.

    Returns:
        True if install succeeded.
    """
    if check.installed:
        return True
    if not check.install_cmd:
        logger.error("No package manager found to install %s", check.package)
        return False

    logger.info("Installing %s: %s", check.package, " ".join(check.install_cmd))
    result = broker.run(check.install_cmd, elevate=check.needs_elevation)
    if result.returncode != 0:
        logger.error("Installing %s failed with status %d", check.package, result.returncode)
        return False
    return shutil.which(check.binary) is not None
