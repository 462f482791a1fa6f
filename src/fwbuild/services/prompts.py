"""User prompts.

``InteractivePrompter`` blocks on the terminal; ``AutoPrompter`` answers
immediately for CI and unattended runs.
"""

import logging

import typer

logger = logging.getLogger(__name__)


class PromptAborted(Exception):
    """User interrupted a prompt (Ctrl-C or end of input)."""


class InteractivePrompter:
    """Asks on the terminal via typer."""

    def confirm(self, question: str, default: bool = False) -> bool:
        try:
            return typer.confirm(question, default=default)
        except typer.Abort:
            raise PromptAborted(question) from None

    def ask(self, question: str, default: str = "") -> str:
        try:
            answer = typer.prompt(question, default=default, show_default=bool(default))
        except typer.Abort:
            raise PromptAborted(question) from None
        return answer.strip()


class AutoPrompter:
    """Answers without blocking.

    Confirmations get ``yes`` when ``assume_yes`` is set and their default
    otherwise; questions get their default.
    """

    def __init__(self, assume_yes: bool = False):
        self.assume_yes = assume_yes

    def confirm(self, question: str, default: bool = False) -> bool:
        answer = True if self.assume_yes else default
        logger.info(f"{question} -> {'yes' if answer else 'no'} (auto)")
        return answer

    def ask(self, question: str, default: str = "") -> str:
        logger.debug(f"{question} -> {default!r} (auto)")
        return default
