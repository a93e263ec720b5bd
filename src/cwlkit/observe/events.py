"""Lifecycle events, timing, and trace recording for resolution runs."""

from __future__ import annotations

import json
import sys
import time
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TextIO

from cwlkit.io.fileops import atomic_write

TRACE_VERSION = "1.0"


class Timer:
    """Context manager that records wall time in whole milliseconds."""

    def __init__(self) -> None:
        self.start: float = 0
        self.elapsed_ms: int = 0

    def __enter__(self) -> "Timer":
        self.start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.elapsed_ms = int((time.perf_counter() - self.start) * 1000)


class TraceRecorder:
    """Collects resolver events in order so a run can be saved as one JSON trace.

    Each entry carries its category, a sequence number, and the offset in ms
    since the recorder was created; event data is merged into the entry.
    """

    def __init__(self, document: str | None = None) -> None:
        self.document = document
        self.entries: list[dict[str, Any]] = []
        self._start = time.perf_counter()

    def _offset_ms(self) -> int:
        return int((time.perf_counter() - self._start) * 1000)

    def record(self, category: str, data: dict[str, Any]) -> None:
        self.entries.append({
            "seq": len(self.entries),
            "category": category,
            "offset_ms": self._offset_ms(),
            **data,
        })

    def counts(self) -> dict[str, int]:
        return dict(Counter(entry["category"] for entry in self.entries))

    def save(self, path: str | Path) -> str:
        """Write the trace atomically and return its path."""
        payload = {
            "trace_version": TRACE_VERSION,
            "document": self.document,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "total_duration_ms": self._offset_ms(),
            "counts": self.counts(),
            "entries": self.entries,
        }
        atomic_write(path, json.dumps(payload, indent=2, default=str).encode())
        return str(path)


class EventEmitter:
    """Writes NDJSON lifecycle events and feeds an optional trace recorder.

    Events go to ``stream`` (stderr when unset) only when ``enabled``; the
    trace recorder, if any, sees every event regardless.
    """

    def __init__(
        self,
        enabled: bool = False,
        trace: TraceRecorder | None = None,
        stream: TextIO | None = None,
    ) -> None:
        self.enabled = enabled
        self.trace = trace
        self.stream = stream

    def emit(self, event: str, data: dict[str, Any] | None = None) -> None:
        data = data or {}
        if self.trace is not None:
            self.trace.record(event, data)
        if not self.enabled:
            return
        out = self.stream or sys.stderr
        out.write(json.dumps({
            "event": event,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data": data,
        }, default=str) + "\n")
        out.flush()
