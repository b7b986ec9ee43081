"""
Yes/no/quit confirmation capability.

The engine never reads stdin itself. It asks a Confirmer, which answers
YES, NO or CANCELLED; CANCELLED turns into OperationAborted at the call
site instead of exiting from inside a helper.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol

import click
from rich.console import Console

from .errors import OperationAborted


class Answer(str, Enum):
    """Tri-state confirmation result."""

    YES = "yes"
    NO = "no"
    CANCELLED = "cancelled"


class Confirmer(Protocol):
    """Anything that can answer a yes/no question."""

    def ask(self, message: str, default: bool) -> Answer:
        ...


_YES = {"y", "yes"}
_NO = {"n", "no"}
_QUIT = {"q", "quit", "exit"}


def parse_answer(raw: str, default: bool) -> Optional[Answer]:
    """Interpret one line of operator input.

    Args:
        raw: What was typed.
        default: Answer used for empty input.

    Returns:
        The Answer, or None when the input is not recognized.
    """
    text = raw.strip().lower()
    if not text:
        return Answer.YES if default else Answer.NO
    if text in _YES:
        return Answer.YES
    if text in _NO:
        return Answer.NO
    if text in _QUIT:
        return Answer.CANCELLED
    return None


class ConsoleConfirmer:
    """Interactive confirmer. Re-asks until the answer is understood."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def ask(self, message: str, default: bool) -> Answer:
        hint = "(Y/n)" if default else "(y/N)"
        while True:
            raw = click.prompt(
                f"{message} {hint}", default="", show_default=False
            )
            answer = parse_answer(raw, default)
            if answer is not None:
                return answer
            self.console.print("[yellow]Choose Y or N[/]")


class AutoConfirmer:
    """Non-interactive confirmer that always takes the default."""

    def ask(self, message: str, default: bool) -> Answer:
        return Answer.YES if default else Answer.NO


def confirm(confirmer: Confirmer, message: str, default: bool) -> bool:
    """Ask and collapse the answer to a boolean.

    Raises:
        OperationAborted: The operator chose to quit.
    """
    answer = confirmer.ask(message, default)
    if answer is Answer.CANCELLED:
        raise OperationAborted("Exiting...")
    return answer is Answer.YES
