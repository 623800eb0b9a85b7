"""
Audit log sinks.

The validator and compiler only ever call `sink.write(message, suppress_console)`.
Where the lines end up (a file, a list in tests, nowhere) is the sink's concern.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class LogSink:
    """Base sink: echoes every line to the module logger unless suppressed."""

    def write(self, message: str, suppress_console: bool = False) -> None:
        self._record(message)
        if not suppress_console:
            logger.info(message)

    def _record(self, message: str) -> None:
        """Persist the line. The base sink keeps nothing."""


class FileLogSink(LogSink):
    """Appends each line to a log file, opening it per write."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _record(self, message: str) -> None:
        with self.path.open("a", encoding="utf-8") as f:
            f.write(message + "\n")


class MemoryLogSink(LogSink):
    """Keeps lines in memory, for tests and API responses."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def _record(self, message: str) -> None:
        self.lines.append(message)
