"""
secmon - Operator Console

Thread-safe writer for operator-facing output: coloured alert lines,
banners and statistics tables. Kept separate from `logging` so that the
operator view stays readable while structured logs go to their handlers,
and so tests can capture it with an in-memory stream.
"""

from __future__ import annotations

import sys
import threading
from typing import TextIO

RESET = "\x1b[0m"

SEVERITY_COLORS = {
    "CRITICAL": "\x1b[31m",  # Red
    "HIGH": "\x1b[33m",  # Yellow
    "MEDIUM": "\x1b[36m",  # Cyan
    "LOW": "\x1b[32m",  # Green
}
DEFAULT_COLOR = "\x1b[37m"


class ConsoleChannel:
    """Line-oriented writer for the operator console."""

    def __init__(self, stream: TextIO | None = None, color: bool = True, enabled: bool = True):
        self._stream = stream
        self.color = color
        self.enabled = enabled
        self._lock = threading.Lock()

    @property
    def stream(self) -> TextIO:
        # Resolved lazily so pytest's capsys replacement of sys.stdout is honoured
        return self._stream if self._stream is not None else sys.stdout

    def write(self, *lines: str) -> None:
        if not self.enabled:
            return
        with self._lock:
            for line in lines:
                print(line, file=self.stream)
            self.stream.flush()

    def tag(self, severity: str) -> str:
        """`[SEVERITY]`, coloured when colour output is on."""
        if not self.color:
            return f"[{severity}]"
        color = SEVERITY_COLORS.get(severity, DEFAULT_COLOR)
        return f"{color}[{severity}]{RESET}"
