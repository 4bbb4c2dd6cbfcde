"""
Operator prompts — confirmation and credential input.

The lifecycle controller asks questions through a ``Prompter`` so that
automated runs and tests can supply answers without a terminal.
"""

from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod
from collections.abc import Iterable

import click

logger = logging.getLogger(__name__)


def is_yes(answer: str | None) -> bool:
    """Only an explicit ``y``/``yes`` counts as agreement."""
    return (answer or "").strip().lower() in ("y", "yes")


class Prompter(ABC):
    """Source of operator answers."""

    @abstractmethod
    def confirm_intent(self, summary: str) -> bool:
        """Ask whether to go ahead with the selected action."""

    @abstractmethod
    def ask(self, question: str) -> str:
        """Ask a free-form question and return the raw answer."""

    @abstractmethod
    def secret(self, question: str) -> str:
        """Ask for a value without echoing it."""


class ClickPrompter(Prompter):
    """Interactive prompts on the controlling terminal.

    Args:
        assume_yes: Answer the intent confirmation automatically.
            Other questions are still asked.
    """

    def __init__(self, assume_yes: bool = False):
        self._assume_yes = assume_yes

    @staticmethod
    def _prompt(question: str, **kwargs) -> str:
        # EOF or Ctrl-C on stdin counts as an empty answer
        try:
            return click.prompt(question, default="", show_default=False, **kwargs)
        except click.Abort:
            logger.info("Input closed; leaving %r unanswered", question)
            return ""

    def confirm_intent(self, summary: str) -> bool:
        click.secho(f"ℹ️  {summary}", fg="cyan")
        if self._assume_yes:
            logger.info("User confirmation: y (--yes)")
            return True
        answer = self._prompt("⚠️  Continue? (y/n)")
        logger.info("User confirmation: %s", answer)
        return is_yes(answer)

    def ask(self, question: str) -> str:
        if not sys.stdin.isatty():
            logger.info("No terminal attached; leaving %r unanswered", question)
            return ""
        return self._prompt(question)

    def secret(self, question: str) -> str:
        return self._prompt(question, hide_input=True)


class ScriptedPrompter(Prompter):
    """Replays a fixed list of answers in order.

    Used by tests and by callers driving the deployer programmatically.
    Running out of answers yields empty strings, which every question
    treats as "no".
    """

    def __init__(self, answers: Iterable[str] = ()):
        self._answers = list(answers)
        self.questions: list[str] = []

    def _next(self, question: str) -> str:
        self.questions.append(question)
        return self._answers.pop(0) if self._answers else ""

    def confirm_intent(self, summary: str) -> bool:
        return is_yes(self._next(summary))

    def ask(self, question: str) -> str:
        return self._next(question)

    def secret(self, question: str) -> str:
        return self._next(question)
