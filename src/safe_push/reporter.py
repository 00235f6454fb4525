"""Reporters turn pipeline events into output.

The pipeline only ever calls these methods; it never echoes anything
itself.
"""

from abc import ABC, abstractmethod
from typing import List, Tuple

import click


class Reporter(ABC):
    """Sink for structured run events."""

    @abstractmethod
    def emit(self, level: str, message: str) -> None:
        ...

    def info(self, message: str) -> None:
        self.emit("info", message)

    def warning(self, message: str) -> None:
        self.emit("warning", message)

    def fatal(self, message: str) -> None:
        self.emit("fatal", message)

    def success(self, message: str) -> None:
        self.emit("success", message)

    def debug(self, message: str) -> None:
        self.emit("debug", message)


class ConsoleReporter(Reporter):
    """Plain click.echo output. Warnings and fatals go to stderr."""

    PREFIXES = {
        "info": "",
        "warning": "WARNING: ",
        "fatal": "ERROR: ",
        "success": "",
        "debug": "[DEBUG] ",
    }

    def __init__(self, debug: bool = False):
        self.show_debug = debug

    def emit(self, level: str, message: str) -> None:
        if level == "debug" and not self.show_debug:
            return
        err = level in ("warning", "fatal")
        click.echo(f"{self.PREFIXES.get(level, '')}{message}", err=err)


class RecordingReporter(Reporter):
    """Keeps every event in memory."""

    def __init__(self):
        self.events: List[Tuple[str, str]] = []

    def emit(self, level: str, message: str) -> None:
        self.events.append((level, message))

    def messages(self, level: str) -> List[str]:
        return [m for lvl, m in self.events if lvl == level]
