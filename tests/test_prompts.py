"""Tests for the confirmation capability."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from conftest import ScriptedConfirmer
from safemirror.errors import OperationAborted
from safemirror.prompts import (
    Answer,
    AutoConfirmer,
    ConsoleConfirmer,
    confirm,
    parse_answer,
)


class TestParseAnswer:
    """Reading one line of operator input."""

    @pytest.mark.parametrize("raw", ["y", "Y", "yes", " YES "])
    def test_yes(self, raw):
        assert parse_answer(raw, default=False) is Answer.YES

    @pytest.mark.parametrize("raw", ["n", "No", "NO"])
    def test_no(self, raw):
        assert parse_answer(raw, default=True) is Answer.NO

    @pytest.mark.parametrize("raw", ["q", "quit", "EXIT"])
    def test_quit(self, raw):
        assert parse_answer(raw, default=True) is Answer.CANCELLED

    def test_empty_takes_default(self):
        assert parse_answer("", default=True) is Answer.YES
        assert parse_answer("  ", default=False) is Answer.NO

    def test_unknown(self):
        assert parse_answer("maybe", default=True) is None


class TestConsoleConfirmer:
    """Interactive prompting."""

    def test_reasks_until_understood(self):
        with patch("safemirror.prompts.click.prompt", side_effect=["what", "y"]) as prompt:
            answer = ConsoleConfirmer().ask("Go?", default=False)
        assert answer is Answer.YES
        assert prompt.call_count == 2
        assert prompt.call_args.args[0] == "Go? (y/N)"

    def test_default_hint(self):
        with patch("safemirror.prompts.click.prompt", return_value="") as prompt:
            answer = ConsoleConfirmer().ask("Go?", default=True)
        assert answer is Answer.YES
        assert prompt.call_args.args[0] == "Go? (Y/n)"


class TestConfirm:
    """Collapsing answers to booleans."""

    def test_auto_confirmer_takes_defaults(self):
        assert confirm(AutoConfirmer(), "Go?", default=True)
        assert not confirm(AutoConfirmer(), "Go?", default=False)

    def test_cancel_raises(self):
        with pytest.raises(OperationAborted) as exc_info:
            confirm(ScriptedConfirmer(Answer.CANCELLED), "Go?", default=True)
        assert exc_info.value.exit_code == 0
