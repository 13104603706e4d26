"""Interactive console collaborator used by the login flow.

The login state machine never reads stdin directly. It asks a
:class:`Console` to prompt, mask, notify and offer choices, so the same
flow runs against a terminal (:class:`TerminalConsole`) or against a
scripted console in tests.
"""

from __future__ import annotations

import sys
from typing import Protocol, Sequence

import typer

from idtenant.exceptions import InvalidUsageError
from idtenant.output import get_output


class Console(Protocol):
    """What the login flow needs from the user-facing side."""

    def prompt_text(self, message: str, default: str = "") -> str: ...

    def prompt_secret(self, message: str) -> str: ...

    def notify(self, message: str) -> None: ...

    def choose(self, message: str, options: Sequence[str]) -> str:
        """Show numbered *options* and return the raw answer (blank allowed)."""
        ...


class TerminalConsole:
    """:class:`Console` backed by ``typer.prompt`` and the output manager.

    Args:
        no_input: When ``True`` every prompt raises
            :class:`~idtenant.exceptions.InvalidUsageError` instead of
            blocking, matching the ``--no-input`` CLI flag.
    """

    def __init__(self, no_input: bool = False) -> None:
        self._no_input = no_input

    def prompt_text(self, message: str, default: str = "") -> str:
        self._require_tty(message)
        return typer.prompt(message, default=default, show_default=bool(default))

    def prompt_secret(self, message: str) -> str:
        self._require_tty(message)
        return typer.prompt(message, hide_input=True)

    def notify(self, message: str) -> None:
        get_output().info(message)

    def choose(self, message: str, options: Sequence[str]) -> str:
        output = get_output()
        for i, option in enumerate(options, 1):
            output.info(f"  {i}. {option}")
        return self.prompt_text(message, default="")

    def _require_tty(self, message: str) -> None:
        if self._no_input or not sys.stdin.isatty():
            raise InvalidUsageError(
                f"Input required ({message.strip().rstrip(':')}) but prompting is disabled "
                "or stdin is not a TTY"
            )
