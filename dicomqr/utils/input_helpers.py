"""
Generic console-input utilities.

Only user-interaction primitives live here so that business logic in CLI
commands remains testable.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar

import click

_T = TypeVar("_T")


def prompt_input(
    message: str,
    default: Any = None,
    convert: Optional[Callable[[str], _T]] = None,
) -> Any:
    """Display an interactive prompt and return validated input.

    Args:
        message: Prompt text.
        default: Value returned when the input is empty.
        convert: Optional converter; a ``ValueError`` re-prompts.

    Returns:
        The raw string, or the converted value when *convert* is given.
    """
    while True:
        click.echo()  # blank line before every prompt for spacing
        raw = click.prompt(message, default=default, prompt_suffix="\n> ", type=str)
        if convert is None:
            return raw
        try:
            return convert(raw)
        except ValueError as exc:
            click.echo(f"[ERROR] invalid input ({exc})", err=True)


def prompt_yes_no(question: str, default: bool = False) -> bool:
    """Display *question* and return ``True`` for “y”."""
    return click.confirm(question, default=default)
