"""Console output abstraction.

Services never print directly. They receive a `ConsoleProtocol` and report
progress through it, so the same flow can log to a terminal with Rich, emit
GitHub Actions workflow commands on a runner, or be captured in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "ActionsConsole",
    "MockConsole",
    "OutputRecord",
]


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()  # command echoes, secondary details
    HEADER = auto()

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Interface for operator-facing output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        """Print a message with optional styling.

        Args:
            message: The text to print
            style: The style to apply
        """
        ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None: ...


class RichConsole:
    """Terminal console backed by Rich."""

    def __init__(self, *, stderr: bool = False) -> None:
        # Import Rich lazily to avoid import-time dependency
        from rich.console import Console

        self._console = Console(stderr=stderr, highlight=False)
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.HEADER: "blue bold",
        }

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        rich_style = self._style_map.get(style, "")
        if rich_style:
            self._console.print(message, style=rich_style, markup=False)
        else:
            self._console.print(message, markup=False)

    def success(self, message: str) -> None:
        self._console.print(f"[green]OK[/green] {_escape(message)}")

    def error(self, message: str) -> None:
        self._console.print(f"[red bold]error:[/red bold] {_escape(message)}")

    def warning(self, message: str) -> None:
        self._console.print(f"[yellow]warning:[/yellow] {_escape(message)}")

    def info(self, message: str) -> None:
        self._console.print(f"[cyan]info:[/cyan] {_escape(message)}")

    def header(self, message: str) -> None:
        self._console.print(f"[blue bold]** {_escape(message)} **[/blue bold]")


def _escape(message: str) -> str:
    from rich.markup import escape

    return escape(message)


def _workflow_command_data(message: str) -> str:
    # Workflow command values must escape %, CR and LF.
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class ActionsConsole:
    """Console for GitHub Actions runners.

    Errors and warnings become `::error::` / `::warning::` workflow commands
    so they surface as annotations on the run; everything else is plain text.
    """

    def __init__(self, *, stderr: bool = False) -> None:
        from rich.console import Console

        # Workflow commands must reach the runner verbatim (`::warning::` is also an emoji code).
        self._console = Console(
            stderr=stderr,
            no_color=True,
            emoji=False,
            highlight=False,
            soft_wrap=True,
            force_terminal=False,
        )

    def _emit(self, line: str) -> None:
        self._console.print(line, markup=False)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        match style:
            case Style.ERROR:
                self.error(message)
            case Style.WARNING:
                self.warning(message)
            case _:
                self._emit(message)

    def success(self, message: str) -> None:
        self._emit(message)

    def error(self, message: str) -> None:
        self._emit(f"::error::{_workflow_command_data(message)}")

    def warning(self, message: str) -> None:
        self._emit(f"::warning::{_workflow_command_data(message)}")

    def info(self, message: str) -> None:
        self._emit(message)

    def header(self, message: str) -> None:
        self._emit(f"** {message} **")


@dataclass
class OutputRecord:
    """A single output record for MockConsole."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console that captures output for testing."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"OK {message}", Style.SUCCESS))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"info: {message}", Style.INFO))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    # Test helper methods

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        return any(o.style == Style.WARNING for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        """Find all outputs containing a substring."""
        return [o for o in self.outputs if substring in o.message]

    def count(self, style: Style) -> int:
        return sum(1 for o in self.outputs if o.style == style)
