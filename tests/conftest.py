"""Shared test fixtures for safemirror."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from safemirror.models import PrivilegeContext
from safemirror.privilege import PrivilegeBroker
from safemirror.prompts import Answer


class ScriptedConfirmer:
    """Confirmer that replays fixed answers and records every question.

    Running out of answers fails the test, so unexpected prompts are caught.
    """

    def __init__(self, *answers: Answer):
        self.answers = list(answers)
        self.questions: list[str] = []

    def ask(self, message: str, default: bool) -> Answer:
        self.questions.append(message)
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {message}")
        return self.answers.pop(0)


def write_tree(root: Path, files: dict[str, bytes | str], mtime: int | None = None) -> Path:
    """Create ``files`` (relative path -> content) under ``root``."""
    root.mkdir(parents=True, exist_ok=True)
    for rel, content in files.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            content = content.encode("utf-8")
        target.write_bytes(content)
        if mtime is not None:
            os.utime(target, (mtime, mtime))
    return root


@pytest.fixture
def src_tree(tmp_path: Path) -> Path:
    """A small source tree with nested and hidden entries."""
    return write_tree(
        tmp_path / "src",
        {
            "a.txt": "alpha",
            "b/c.txt": "charlie charlie",
            "b/d/e.bin": b"\x00" * 64,
            ".hidden": "secret",
            ".config/settings.ini": "[x]\ny=1\n",
        },
        mtime=1_700_000_000,
    )


@pytest.fixture
def temp_root(tmp_path: Path) -> Path:
    """Empty directory standing in for the shared temp area."""
    root = tmp_path / "tmp-area"
    root.mkdir()
    return root


@pytest.fixture
def broker() -> PrivilegeBroker:
    """Unprivileged broker with no elevation helper."""
    return PrivilegeBroker(PrivilegeContext(has_root=False))
