"""Operator prompts.

Thin layer over typer.prompt/typer.confirm adding numbered single and
multi-select menus. Every prompt carries a stable key so tests (and
--yes runs) can answer without a terminal. In assume_defaults mode every
prompt returns its default without reading input.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

import typer

from launchpad.adapters.status import FailureDiagnosis

T = TypeVar("T")

Validator = Callable[[str], str | None]


class SetupAborted(Exception):
    """Raised when the operator chooses to stop the wizard."""


class RecoveryAction(Enum):
    """Operator response to a failed or timed-out step."""

    RETRY = "retry"
    CONTINUE = "continue"
    ABORT = "abort"


@dataclass(frozen=True)
class Choice(Generic[T]):
    """One entry of a select or multi-select menu.

    Attributes:
        title: Text shown to the operator
        value: Value returned when picked
        selected: Pre-selected (multi-select) default
    """

    title: str
    value: T
    selected: bool = False


def _parse_indexes(raw: str, count: int) -> list[int] | None:
    """Parse "1,3 4" into zero-based indexes; None when malformed."""
    indexes: list[int] = []
    for token in raw.replace(",", " ").split():
        if not token.isdigit():
            return None
        index = int(token) - 1
        if not 0 <= index < count:
            return None
        if index not in indexes:
            indexes.append(index)
    return indexes


class Prompter:
    """Asks the operator questions.

    Usage:
        prompter = Prompter()
        platforms = prompter.multiselect("platforms", "Which platforms?", choices, min_selected=1)
    """

    def __init__(self, assume_defaults: bool = False) -> None:
        """Initialize prompter.

        Args:
            assume_defaults: Answer every prompt with its default
        """
        self.assume_defaults = assume_defaults

    def confirm(self, key: str, message: str, default: bool = False) -> bool:
        """Ask a yes/no question."""
        if self.assume_defaults:
            return default
        return typer.confirm(message, default=default)

    def select(
        self,
        key: str,
        message: str,
        choices: Sequence[Choice[T]],
        default: int = 0,
    ) -> T:
        """Ask the operator to pick exactly one choice."""
        if not choices:
            raise ValueError(f"No choices for prompt '{key}'")
        if self.assume_defaults:
            return choices[default].value

        typer.echo(message)
        for number, choice in enumerate(choices, start=1):
            typer.echo(f"  {number}. {choice.title}")

        while True:
            raw = typer.prompt(f"Select [1-{len(choices)}]", default=str(default + 1))
            indexes = _parse_indexes(str(raw), len(choices))
            if indexes and len(indexes) == 1:
                return choices[indexes[0]].value
            typer.secho(f"  Enter a number between 1 and {len(choices)}.", fg="yellow")

    def multiselect(
        self,
        key: str,
        message: str,
        choices: Sequence[Choice[T]],
        min_selected: int = 0,
    ) -> list[T]:
        """Ask the operator to pick any number of choices."""
        defaults = [i for i, choice in enumerate(choices) if choice.selected]
        if self.assume_defaults:
            return [choices[i].value for i in defaults]

        typer.echo(message)
        for number, choice in enumerate(choices, start=1):
            mark = "x" if choice.selected else " "
            typer.echo(f"  [{mark}] {number}. {choice.title}")

        default_raw = ",".join(str(i + 1) for i in defaults) or "none"
        while True:
            raw = str(
                typer.prompt(
                    "Numbers separated by commas ('none' for nothing)",
                    default=default_raw,
                )
            ).strip()
            indexes = [] if raw.lower() == "none" else _parse_indexes(raw, len(choices))
            if indexes is None:
                typer.secho(f"  Use numbers between 1 and {len(choices)}.", fg="yellow")
            elif len(indexes) < min_selected:
                typer.secho(f"  Select at least {min_selected}.", fg="yellow")
            else:
                return [choices[i].value for i in sorted(indexes)]

    def text(
        self,
        key: str,
        message: str,
        default: str | None = None,
        hide_input: bool = False,
        validate: Validator | None = None,
    ) -> str:
        """Ask for free text, re-asking until validate() returns None."""
        if self.assume_defaults:
            return default or ""

        while True:
            value = str(typer.prompt(message, default=default, hide_input=hide_input)).strip()
            error = validate(value) if validate else None
            if error is None:
                return value
            typer.secho(f"  {error}", fg="yellow")

    def recover(
        self,
        key: str,
        diagnosis: FailureDiagnosis,
        allow_retry: bool = True,
    ) -> RecoveryAction:
        """Show a failure diagnosis and ask how to proceed.

        Defaults to CONTINUE so unattended runs degrade instead of looping.
        """
        typer.secho(f"\n❌ {diagnosis.summary}", fg="red")
        typer.secho(f"   {diagnosis.hint}", fg="yellow")

        choices: list[Choice[RecoveryAction]] = []
        if allow_retry:
            choices.append(Choice("Retry", RecoveryAction.RETRY))
        choices.append(Choice("Continue without it (fix later by hand)", RecoveryAction.CONTINUE))
        choices.append(Choice("Abort setup", RecoveryAction.ABORT))

        default = choices.index(next(c for c in choices if c.value is RecoveryAction.CONTINUE))
        return self.select(key, "How do you want to proceed?", choices, default=default)


def require_value(label: str) -> Validator:
    """Validator rejecting empty input."""

    def _validate(value: str) -> str | None:
        return None if value else f"{label} is required"

    return _validate
