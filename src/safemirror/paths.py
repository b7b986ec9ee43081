"""Directory argument resolution."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .errors import PathNotFoundError
from .privilege import PrivilegeBroker
from .prompts import Confirmer, confirm

logger = logging.getLogger("safemirror.paths")


def canonical(raw: str | Path) -> Path:
    """Absolute path with ``~`` expanded and every existing symlink collapsed.

    The path does not need to exist.
    """
    return Path(raw).expanduser().resolve(strict=False)


def resolve_directory(
    raw: str | Path,
    *,
    create: bool = False,
    confirmer: Optional[Confirmer] = None,
    broker: Optional[PrivilegeBroker] = None,
    dry_run: bool = False,
) -> Path:
    """Resolve a user-supplied directory to its canonical form.

    Args:
        raw: Path as typed by the operator.
        create: Offer to create the directory when it is missing.
        confirmer: Asked before creating. Required when ``create`` is set.
        broker: Used to create the directory, elevating if needed.
        dry_run: Never create; return the intended path instead.

    Returns:
        Canonical absolute path.

    Raises:
        PathNotFoundError: Missing and not created (declined or creation
            failed), or not a directory.
    """
    if not str(raw).strip():
        raise PathNotFoundError("No directory given")

    path = Path(raw).expanduser()
    if path.is_dir():
        return path.resolve(strict=True)
    if path.exists():
        raise PathNotFoundError(f"Not a directory: {raw}")

    if not create:
        raise PathNotFoundError(f"This directory doesn't exist: {raw}")

    if dry_run:
        intended = canonical(path)
        logger.info("Dry run: %s does not exist and will not be created", intended)
        return intended

    if confirmer is None or not confirm(
        confirmer, f"This directory doesn't exist: {raw}. Create it?", default=True
    ):
        raise PathNotFoundError(f"This directory doesn't exist: {raw}")

    target = canonical(path)
    try:
        if broker is None:
            target.mkdir(parents=True, exist_ok=True)
        else:
            broker.make_directory(target)
    except OSError as exc:
        raise PathNotFoundError(f"Cannot create {raw}: {exc}") from exc
    logger.info("Created directory %s", target)
    return target.resolve(strict=True)
