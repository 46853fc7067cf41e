"""
claimvault/core/events.py

Event sinks — fire-and-forget notification of settled claims and admin actions.

Every event object exposes to_dict(); sinks never look inside it.
Sinks are outside the correctness-critical path: VaultContext and the
settlement engine call emit_safely(), which logs a sink failure instead of
failing an operation that has already committed.

JsonlEventSink contract — emit() MUST, in this exact order:
  1. Acquire lock
  2. Canonicalize event.to_dict() via claimvault.core.canonical
  3. Append one newline-terminated line to the JSONL file
  4. Advance the in-memory counter, only after the write succeeded
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Protocol

from claimvault.core.canonical import canonicalize


logger = logging.getLogger(__name__)


class EventSink(Protocol):
    def emit(self, event) -> None: ...


class NullEventSink:
    """Discards every event."""

    def emit(self, event) -> None:
        return None


class MemoryEventSink:
    """Keeps emitted events in memory. Thread-safe."""

    def __init__(self) -> None:
        self._lock:   threading.Lock = threading.Lock()
        self._events: List[Any]      = []

    def emit(self, event) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> List[Any]:
        with self._lock:
            return list(self._events)

    def of_type(self, event_type: str) -> List[Any]:
        return [e for e in self.events if e.event_type == event_type]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class JsonlEventSink:
    """
    Appends events to a JSONL file, one canonical JSON object per line.

    The file is the audit trail consumed by external indexers.
    Raises RuntimeError on write failure (callers use emit_safely).
    """

    def __init__(self, path) -> None:
        self._path    = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock:   threading.Lock = threading.Lock()
        self._written: int           = 0

    @property
    def path(self) -> Path:
        return self._path

    @property
    def written(self) -> int:
        return self._written

    def emit(self, event) -> None:
        with self._lock:
            line = canonicalize(event.to_dict()).decode("utf-8")
            try:
                with open(self._path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
            except OSError as exc:
                raise RuntimeError(
                    f"JsonlEventSink: event write failed: {exc}"
                ) from exc
            self._written += 1

    def read_all(self) -> List[Dict[str, Any]]:
        """Load every event line back as a dict. Blank lines are skipped."""
        if not self._path.exists():
            return []
        with open(self._path, "r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]


def emit_safely(sink: EventSink, event) -> bool:
    """
    Deliver one event. Returns False and logs if the sink raised.
    The caller's operation has already committed and is not rolled back.
    """
    try:
        sink.emit(event)
        return True
    except Exception:
        logger.warning(
            "Event sink %s failed to emit %s event",
            type(sink).__name__,
            getattr(event, "event_type", "unknown"),
            exc_info=True,
        )
        return False
