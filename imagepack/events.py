"""Structured event emission.

Pipeline components report what they do through an ``EventSink`` rather
than formatting log lines themselves. The default sink forwards events to
the standard ``logging`` module; tests inject ``RecordingEventSink`` and
assert on the recorded events.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

# Events that describe a failure are logged at WARNING or above.
_WARNING_EVENTS = {"part_rejected", "variant_failed", "cleanup_failed", "request_rejected"}
_ERROR_EVENTS = {"request_failed"}


class EventSink(Protocol):
    def emit(self, name: str, **fields: Any) -> None:
        ...


class LoggingEventSink:
    """Write each event as a single ``event=<name> key=value`` log line."""

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger

    def emit(self, name: str, **fields: Any) -> None:
        if name in _ERROR_EVENTS:
            level = logging.ERROR
        elif name in _WARNING_EVENTS:
            level = logging.WARNING
        else:
            level = logging.INFO
        details = " ".join(f"{key}={value!r}" for key, value in fields.items())
        self._log.log(level, "event=%s %s", name, details)


class RecordingEventSink:
    """Keep events in memory. Safe to share between worker threads."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, Dict[str, Any]]] = []
        self._lock = threading.Lock()

    def emit(self, name: str, **fields: Any) -> None:
        with self._lock:
            self.events.append((name, dict(fields)))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def of(self, name: str) -> List[Dict[str, Any]]:
        return [fields for event, fields in self.events if event == name]
