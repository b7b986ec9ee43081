"""Tests for source/destination safety rules."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import ScriptedConfirmer
from safemirror.errors import (
    NestedPathsError,
    OperationAborted,
    RootDestinationError,
    SamePathError,
    SensitiveAreaDeclinedError,
    ValidationError,
)
from safemirror.prompts import Answer
from safemirror.safety import is_nested, is_root, is_sensitive, validate_pair


@pytest.fixture
def pair(tmp_path: Path) -> tuple[Path, Path]:
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    src.mkdir()
    dst.mkdir()
    return src, dst


class TestIdentityRule:
    """Same directory on both sides."""

    def test_same_path(self, pair):
        src, _ = pair
        with pytest.raises(SamePathError):
            validate_pair(src, src, ScriptedConfirmer())

    def test_relative_disguise(self, pair, monkeypatch):
        """A relative spelling of the same directory is still the same."""
        src, _ = pair
        monkeypatch.chdir(src.parent)
        with pytest.raises(SamePathError):
            validate_pair(src, Path("dst/../src"), ScriptedConfirmer())

    def test_symlink_disguise(self, pair, tmp_path):
        src, _ = pair
        link = tmp_path / "link"
        link.symlink_to(src, target_is_directory=True)
        with pytest.raises(SamePathError):
            validate_pair(src, link, ScriptedConfirmer())


class TestRootRule:
    """Destination '/' is never allowed."""

    def test_root_destination(self, pair):
        src, _ = pair
        with pytest.raises(RootDestinationError):
            validate_pair(src, Path("/"), ScriptedConfirmer())

    def test_is_root(self):
        assert is_root(Path("/"))
        assert not is_root(Path("/etc"))


class TestNestingRule:
    """Neither directory may contain the other."""

    def test_destination_inside_source(self, pair):
        src, _ = pair
        with pytest.raises(NestedPathsError):
            validate_pair(src, src / "inner", ScriptedConfirmer())

    def test_source_inside_destination(self, pair):
        src, dst = pair
        inner = dst / "inner"
        inner.mkdir()
        with pytest.raises(NestedPathsError):
            validate_pair(inner, dst, ScriptedConfirmer())

    def test_symlink_disguise(self, pair, tmp_path):
        """A symlink elsewhere that points into the source is still nested."""
        src, _ = pair
        (src / "deep").mkdir()
        link = tmp_path / "elsewhere"
        link.symlink_to(src / "deep", target_is_directory=True)
        with pytest.raises(NestedPathsError):
            validate_pair(src, link, ScriptedConfirmer())

    def test_relative_disguise(self, pair, monkeypatch):
        src, _ = pair
        monkeypatch.chdir(src)
        with pytest.raises(NestedPathsError):
            validate_pair(src, Path("./sub/dir"), ScriptedConfirmer())

    def test_shared_prefix_is_not_nesting(self, tmp_path):
        """/data and /data2 share characters, not segments."""
        data = tmp_path / "data"
        data2 = tmp_path / "data2"
        data.mkdir()
        data2.mkdir()
        validate_pair(data, data2, ScriptedConfirmer())
        assert not is_nested(data, data2)


class TestSensitiveAreaRule:
    """Top-level system directories need two confirmations."""

    @pytest.mark.parametrize("path", ["/etc", "/opt", "/usr", "/home", "/var/", "/srv"])
    def test_detects_sensitive(self, path):
        assert is_sensitive(Path(path))

    @pytest.mark.parametrize("path", ["/etc/nginx", "/usr/local", "/data", "/homework"])
    def test_ignores_others(self, path):
        assert not is_sensitive(Path(path))

    def test_no_prompt_for_ordinary_destination(self, pair):
        """An empty script fails on any prompt, so this proves none was asked."""
        src, dst = pair
        confirmer = ScriptedConfirmer()
        validate_pair(src, dst, confirmer)
        assert confirmer.questions == []

    def test_declining_first_prompt(self, pair):
        src, _ = pair
        confirmer = ScriptedConfirmer(Answer.NO)
        with pytest.raises(SensitiveAreaDeclinedError):
            validate_pair(src, Path("/etc"), confirmer)
        assert len(confirmer.questions) == 1

    def test_declining_second_prompt(self, pair):
        src, _ = pair
        confirmer = ScriptedConfirmer(Answer.YES, Answer.NO)
        with pytest.raises(SensitiveAreaDeclinedError):
            validate_pair(src, Path("/etc"), confirmer)
        assert len(confirmer.questions) == 2

    def test_two_confirmations_pass(self, pair):
        src, _ = pair
        confirmer = ScriptedConfirmer(Answer.YES, Answer.YES)
        validate_pair(src, Path("/opt"), confirmer)
        assert len(confirmer.questions) == 2

    def test_quit_aborts(self, pair):
        src, _ = pair
        with pytest.raises(OperationAborted):
            validate_pair(src, Path("/etc"), ScriptedConfirmer(Answer.CANCELLED))

    def test_declined_is_a_validation_error(self, pair):
        src, _ = pair
        with pytest.raises(ValidationError) as exc_info:
            validate_pair(src, Path("/etc"), ScriptedConfirmer(Answer.NO))
        assert exc_info.value.exit_code == 1
