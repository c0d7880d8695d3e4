"""
Capped diagnostic log for the acquisition controller.

Keeps the most recent entries for on-screen display and mirrors each one to
the process log.
"""

from __future__ import annotations

import time
from collections import deque
from typing import Deque, Tuple

from loguru import logger

from photobooth.core.contracts import LogEntry, Severity


_LOGURU_LEVELS = {
    Severity.INFO: "INFO",
    Severity.WARN: "WARNING",
    Severity.ERROR: "ERROR",
}


class DiagnosticLog:
    """Append-only ring buffer of (severity, message) entries."""

    def __init__(self, capacity: int = 20):
        self.capacity = capacity
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)

    def push(self, severity: Severity, message: str) -> LogEntry:
        entry = LogEntry(timestamp=time.time(), severity=severity, message=message)
        self._entries.append(entry)
        logger.opt(depth=1).log(_LOGURU_LEVELS[severity], f"[photobooth] {message}")
        return entry

    def info(self, message: str) -> LogEntry:
        return self.push(Severity.INFO, message)

    def warn(self, message: str) -> LogEntry:
        return self.push(Severity.WARN, message)

    def error(self, message: str) -> LogEntry:
        return self.push(Severity.ERROR, message)

    def entries(self) -> Tuple[LogEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
