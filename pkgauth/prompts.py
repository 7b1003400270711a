"""Interactive prompts.

The orchestrator and the OAuth app registry only depend on the
:class:`Prompter` protocol; :class:`ClickPrompter` is the terminal
implementation used by the CLI.
"""

from __future__ import annotations

import functools

from typing import TYPE_CHECKING, Protocol, TypeVar

import click


if TYPE_CHECKING:
    from collections.abc import Callable


T = TypeVar("T")


class Prompter(Protocol):
    """Collects answers from a human."""

    def confirm(self, message: str, default: bool = True) -> bool:
        """Ask a yes/no question."""

    def text(self, message: str, hide_input: bool = False) -> str:
        """Ask for free text. Empty answers are returned as ``""``."""

    def select(self, message: str, choices: list[str]) -> str | None:
        """Ask the user to pick one of ``choices``; None if nothing was picked."""

    def warn(self, message: str) -> None:
        """Show a warning the user should read before answering."""


def _interruptible(func: Callable[..., T]) -> Callable[..., T]:
    """Re-raise click's Ctrl+C/EOF abort as KeyboardInterrupt."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):  # type: ignore[no-untyped-def]
        try:
            return func(*args, **kwargs)
        except click.exceptions.Abort:
            raise KeyboardInterrupt from None

    return wrapper


class ClickPrompter:
    """Terminal prompts backed by click."""

    @_interruptible
    def confirm(self, message: str, default: bool = True) -> bool:
        return click.confirm(message, default=default)

    @_interruptible
    def text(self, message: str, hide_input: bool = False) -> str:
        value = click.prompt(message, default="", show_default=False, hide_input=hide_input)
        return str(value).strip()

    @_interruptible
    def select(self, message: str, choices: list[str]) -> str | None:
        if not choices:
            return None
        for index, choice in enumerate(choices, start=1):
            click.echo(f"  {index}) {choice}")
        picked = click.prompt(
            message,
            type=click.IntRange(1, len(choices)),
            default=1 if len(choices) == 1 else None,
        )
        return choices[picked - 1]

    def warn(self, message: str) -> None:
        click.secho(message, fg="yellow", err=True)
