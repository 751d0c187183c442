"""Structured lifecycle events and timing."""

from __future__ import annotations

import json
import sys
import time
from datetime import datetime, timezone
from typing import Any


class Timer:
    """Simple context-manager timer for measuring duration_ms."""

    def __init__(self) -> None:
        self.start: float = 0
        self.elapsed_ms: int = 0

    def __enter__(self) -> "Timer":
        self.start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.elapsed_ms = int((time.perf_counter() - self.start) * 1000)


class EventEmitter:
    """Emits NDJSON lifecycle events to stderr.

    Events: ``encode.start``, ``analysis.complete``, ``encode.complete``,
    ``decode.start``, ``decode.complete`` and ``command.failed``.
    """

    def __init__(self, enabled: bool = False, stream: Any = None) -> None:
        self.enabled = enabled
        self.stream = stream
        self.events: list[str] = []

    def emit(self, event: str, data: dict[str, Any] | None = None) -> None:
        if not self.enabled:
            return
        payload = {
            "event": event,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data": data or {},
        }
        self.events.append(event)
        stream = self.stream or sys.stderr
        stream.write(json.dumps(payload) + "\n")
        stream.flush()
