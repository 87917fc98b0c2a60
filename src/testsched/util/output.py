"""Console output shared by the scheduler and the CLI.

Informational lines and the final report go to stdout; warnings and debug
output go to stderr. Every scheduler line carries the ``testsched:`` prefix.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from rich.console import Console
from rich.markup import escape

PREFIX = "testsched"

console = Console(highlight=False, emoji=False)
err_console = Console(stderr=True, highlight=False, emoji=False)


def info(message: str) -> None:
    console.print(f"{PREFIX}: {escape(message)}", soft_wrap=True)


def warn(message: str) -> None:
    err_console.print(f"[yellow]Warning:[/yellow] {escape(message)}", soft_wrap=True)


def dump(value: object) -> str:
    """Pretty-print a JSON-compatible value for debug output."""
    return json.dumps(value, ensure_ascii=False, indent=2, default=str)


@dataclass(frozen=True, slots=True)
class Scalar:
    value: object

    def render(self) -> list[str]:
        return [str(self.value)]


@dataclass(frozen=True, slots=True)
class Items:
    values: Sequence[object]

    def render(self) -> list[str]:
        return [str(value) for value in self.values]


@dataclass(frozen=True, slots=True)
class Lazy:
    """Payload computed only when debug output is enabled."""

    compute: Callable[[], object]

    def render(self) -> list[str]:
        return [str(self.compute())]


DebugPayload = Scalar | Items | Lazy


class DebugLog:
    def __init__(self, enabled: bool = False, out: Console | None = None) -> None:
        self.enabled = enabled
        self._out = out if out is not None else err_console

    def __call__(self, payload: DebugPayload) -> None:
        if not self.enabled:
            return
        message = " ".join(payload.render())
        self._out.print(f"{PREFIX}: debug: {escape(message)}", soft_wrap=True)
