"""Rich based logging for gqlproject, with helpers used by the command line front end."""

import json
import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

SEVERITY_STYLES = {
    1: "red",
    2: "yellow",
    3: "blue",
    4: "dim",
}


class ProjectLogger(logging.Logger):
    """
    Logger that writes records through a RichHandler and offers a few console helpers.

    Log records and helper output both go to stderr so that command output written to
    stdout (documents, JSON) stays machine readable.
    """

    def __init__(self, name: str, level: int = logging.INFO) -> None:
        super().__init__(name, level)
        self.console = Console(stderr=True)
        self.stdout = Console(soft_wrap=True)

        handler = RichHandler(
            console=self.console,
            rich_tracebacks=True,
            show_time=True,
            show_path=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        self.addHandler(handler)

    def print(self, message: str) -> None:
        """Print a message (with Rich markup support) to stderr."""
        self.console.print(message)

    def output(self, text: str) -> None:
        """Write command output to stdout, without markup or highlighting."""
        self.stdout.print(text, markup=False, highlight=False)

    def success(self, message: str) -> None:
        self.print(f"[green]✓[/green] {message}")

    def print_dict(self, data: dict[str, Any] | list[Any]) -> None:
        """Write JSON data to stdout."""
        self.stdout.print_json(json.dumps(data, indent=2, default=str))

    def diagnostic(self, uri: str, line: int, character: int, severity: int, message: str) -> None:
        """
        Print one diagnostic in a `file:line:column` layout.

        Args:
            uri: Document URI the diagnostic belongs to
            line: Zero based line
            character: Zero based column
            severity: Diagnostic severity (1 error .. 4 hint)
            message: Diagnostic text
        """
        style = SEVERITY_STYLES.get(severity, "")
        label = {1: "error", 2: "warning", 3: "info", 4: "hint"}.get(severity, "note")
        self.console.print(
            f"{escape(uri)}:{line + 1}:{character + 1} [{style}]{label}[/{style}] {escape(message)}", soft_wrap=True
        )


def get_logger(name: str = "gqlproject") -> ProjectLogger:
    """
    Get or create a project logger instance.

    Args:
        name: Logger name (default: "gqlproject")

    Returns:
        ProjectLogger instance
    """
    previous_class = logging.getLoggerClass()
    logging.setLoggerClass(ProjectLogger)
    try:
        logger = logging.getLogger(name)
    finally:
        logging.setLoggerClass(previous_class)

    return logger  # type: ignore[return-value]
