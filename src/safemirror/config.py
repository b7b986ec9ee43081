"""
Configuration resolution.

Three layers, highest first: invocation overrides, the ``key = value``
config file, built-in defaults. ``skip`` is the exception: step names
from every layer are unioned.

Example file::

    # safemirror configuration
    tool = rsync
    skip = preview
    rsync_args = --exclude .cache
"""

from __future__ import annotations

import logging
import os
import shlex
from pathlib import Path
from typing import Any, Optional

from . import DEFAULT_CONFIG_PATH
from .backends import check_option_tokens
from .errors import ConfigError
from .models import BackendType, EffectiveConfig, SyncMode

logger = logging.getLogger("safemirror.config")

SKIP_STEPS = frozenset({"preview", "backup"})

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}

_EXTRA_ARG_KEYS = {f"{b.value}_args": b for b in BackendType}
_KNOWN_KEYS = {
    "tool", "mode", "log", "skip", "dry_run", "no_sudo",
    "no_confirm", "src", "dst", *_EXTRA_ARG_KEYS,
}

CONFIG_TEMPLATE = """\
# safemirror configuration (key = value, '#' starts a comment)
#
# tool        = cp | rsync | rclone
# mode        = mirror | copy
# log         = ~/.local/state/safemirror/runs.log
# skip        = preview,backup
# dry_run     = false
# no_sudo     = false
# no_confirm  = false
# src         = /path/to/source
# dst         = /path/to/destination
# rsync_args  = --exclude .cache
# rclone_args = --transfers 8
# cp_args     = --no-preserve=ownership
"""


def parse_bool(key: str, value: str) -> bool:
    text = value.strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"Invalid boolean for '{key}': {value!r}")


def parse_skip(value: str | set[str] | list[str] | None) -> set[str]:
    """Split a comma list of step names and check each one.

    Raises:
        ConfigError: Unknown step name.
    """
    if not value:
        return set()
    items = value.split(",") if isinstance(value, str) else list(value)
    steps = {item.strip().lower() for item in items if item.strip()}
    unknown = steps - SKIP_STEPS
    if unknown:
        raise ConfigError(
            f"Unknown step(s) in skip: {', '.join(sorted(unknown))} "
            f"(valid: {', '.join(sorted(SKIP_STEPS))})"
        )
    return steps


def parse_extra_args(key: str, value: str) -> list[str]:
    """Split an extra-argument string into option tokens.

    Raises:
        ConfigError: Unbalanced quotes or a bare operand.
    """
    try:
        args = shlex.split(value)
    except ValueError as exc:
        raise ConfigError(f"Cannot parse '{key}': {exc}") from exc
    check_option_tokens(key, args)
    return args


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1]
    return value


def read_config_file(path: Path) -> dict[str, str]:
    """Parse a ``key = value`` file into raw strings.

    Blank lines and ``#`` comments are ignored, unknown keys are logged
    and dropped. A missing file yields an empty dict.

    Raises:
        ConfigError: A line has no ``=``.
    """
    if not path.exists():
        return {}

    values: dict[str, str] = {}
    for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), 1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if "=" not in stripped:
            raise ConfigError(f"{path}:{lineno}: expected 'key = value'")
        key, _, value = stripped.partition("=")
        key = key.strip().lower()
        if key not in _KNOWN_KEYS:
            logger.warning("%s:%d: ignoring unknown key '%s'", path, lineno, key)
            continue
        values[key] = _unquote(value.strip())
    return values


def write_default_config(path: Path) -> bool:
    """Create the commented template with owner-only permissions.

    Returns:
        True if the file was created, False if it already existed.
    """
    if path.exists():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(CONFIG_TEMPLATE)
    logger.info("Created config file %s", path)
    return True


def _coerce_tool(value: str | BackendType) -> BackendType:
    try:
        return BackendType(str(getattr(value, "value", value)).strip().lower())
    except ValueError as exc:
        choices = ", ".join(b.value for b in BackendType)
        raise ConfigError(f"Unknown tool {value!r} (choose {choices})") from exc


def _coerce_mode(value: str | SyncMode) -> SyncMode:
    try:
        return SyncMode(str(getattr(value, "value", value)).strip().lower())
    except ValueError as exc:
        raise ConfigError(f"Unknown mode {value!r} (choose mirror or copy)") from exc


def _apply(settings: dict[str, Any], key: str, value: Any) -> None:
    if key == "tool":
        settings["tool"] = _coerce_tool(value)
    elif key == "mode":
        settings["mode"] = _coerce_mode(value)
    elif key == "log":
        settings["log_path"] = Path(value).expanduser() if value else None
    elif key in ("dry_run", "no_sudo", "no_confirm"):
        settings[key] = value if isinstance(value, bool) else parse_bool(key, value)
    elif key in ("src", "dst"):
        settings[key] = value or None
    elif key in _EXTRA_ARG_KEYS:
        args = value if isinstance(value, list) else parse_extra_args(key, value)
        settings["extra_args"][_EXTRA_ARG_KEYS[key]] = args


def merge_config(
    file_values: dict[str, str],
    overrides: Optional[dict[str, Any]] = None,
) -> EffectiveConfig:
    """Merge file values and overrides over the defaults.

    Args:
        file_values: Raw strings from ``read_config_file``.
        overrides: Invocation values; ``None`` entries mean "not given".

    Returns:
        EffectiveConfig for this run.
    """
    settings: dict[str, Any] = {"extra_args": {}}
    skip = parse_skip(file_values.get("skip"))

    for key, value in file_values.items():
        if key != "skip":
            _apply(settings, key, value)

    for key, value in (overrides or {}).items():
        if value is None:
            continue
        if key == "skip":
            skip |= parse_skip(value)
            continue
        _apply(settings, key, value)

    settings["skip"] = skip
    return EffectiveConfig(**settings)


def config_path(explicit: Optional[str] = None) -> Path:
    """Config file location: explicit argument, else env/default."""
    return Path(explicit or DEFAULT_CONFIG_PATH).expanduser()


def load_config(
    path: Optional[Path] = None,
    overrides: Optional[dict[str, Any]] = None,
    *,
    create: bool = True,
) -> EffectiveConfig:
    """Read the config file (creating the template first if asked) and merge.

    Args:
        path: Config file. Defaults to ``config_path()``.
        overrides: Invocation overrides.
        create: Write the commented template when the file is missing.
    """
    cfg_path = path or config_path()
    if create:
        try:
            write_default_config(cfg_path)
        except OSError as exc:
            logger.warning("Could not create config file %s: %s", cfg_path, exc)
    return merge_config(read_config_file(cfg_path), overrides)
