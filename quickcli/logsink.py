"""
Shared status log.

Every component reports progress and failures by appending human-readable
lines to a LogSink. The interactive UI renders a snapshot of it; the CLI
echoes lines to the console as they arrive.
"""

import threading
from collections.abc import Iterator

from rich.console import Console


class LogSink:
    """Append-only, thread-safe sequence of status lines."""

    def __init__(self, console: Console | None = None, initial: list[str] | None = None):
        self._lines: list[str] = list(initial or [])
        self._lock = threading.Lock()
        self._console = console

    def append(self, message: str) -> None:
        """
        Append a line to the log.

        Args:
            message: Status line to record
        """
        with self._lock:
            self._lines.append(message)
            if self._console is not None:
                # markup=False: lines carry paths and URLs, not Rich markup
                self._console.print(message, markup=False, highlight=False)

    def snapshot(self) -> list[str]:
        """Return a consistent copy of all lines appended so far."""
        with self._lock:
            return list(self._lines)

    def tail(self, count: int) -> list[str]:
        """Return the most recent ``count`` lines."""
        if count <= 0:
            return []
        with self._lock:
            return self._lines[-count:]

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())
