"""Logging for reflectql, with rich console output for the CLI."""

import json
import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler


class ReflectQLLogger(logging.Logger):
    """
    Logger for schema builds and the CLI.

    Builds report through the standard levels: debug for each type, field and method
    decision, info when a build starts and finishes. The extra methods write CLI
    output to the same stderr console the handler uses.
    """

    def __init__(self, name: str, level: int = logging.INFO) -> None:
        super().__init__(name, level)
        self.console = Console(stderr=True)

        handler = RichHandler(console=self.console, rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        self.addHandler(handler)

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def hint(self, message: str) -> None:
        """Dimmed follow-up line, e.g. how to get more detail after an error."""
        self.console.print(message, style="dim")

    def rule(self, title: str) -> None:
        self.console.rule(f"[bold blue]{title}")

    def print_dict(self, data: dict[str, Any]) -> None:
        """Highlighted JSON dump of a mapping such as the type counts of a schema."""
        self.console.print_json(json.dumps(data))

    def key_value(self, key: str, value: Any) -> None:
        self.console.print(f"[dim]{key}:[/dim] {value}")


def get_logger(name: str = "reflectql") -> ReflectQLLogger:
    """
    Return the logger called ``name`` as a ``ReflectQLLogger``.

    The logger class is swapped in for this lookup only, so loggers of other
    libraries keep the default class.
    """
    previous_class = logging.getLoggerClass()
    logging.setLoggerClass(ReflectQLLogger)
    try:
        logger = logging.getLogger(name)
    finally:
        logging.setLoggerClass(previous_class)

    return logger  # type: ignore[return-value]
