"""
claimvault/core/time.py

THE ONLY TIMESTAMP SOURCE IN CLAIMVAULT.

Wire format: YYYY-MM-DDTHH:MM:SS.mmmZ
             (milliseconds, explicit Z, no +00:00, no microseconds)

History records and events take their timestamps from a Clock.
SystemClock reads the wall clock; FixedClock is for tests.
"""

import re
import threading
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol


TIMESTAMP_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$"
)


def format_timestamp(moment: datetime) -> str:
    """Render an aware datetime in wire format (converted to UTC)."""
    moment = moment.astimezone(timezone.utc)
    ms     = moment.microsecond // 1000
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms:03d}Z"


def vault_timestamp() -> str:
    """
    Return current UTC time in wire format.
    Format: YYYY-MM-DDTHH:MM:SS.mmmZ  (exactly 3 fractional digits, Z suffix)
    """
    return format_timestamp(datetime.now(timezone.utc))


class Clock(Protocol):
    def now(self) -> str: ...


class SystemClock:
    """Wall-clock time."""

    def now(self) -> str:
        return vault_timestamp()


class FixedClock:
    """
    Deterministic clock. Returns `start` and advances by `step` per call.
    A zero step freezes time.
    """

    def __init__(
        self,
        start: Optional[datetime] = None,
        step:  timedelta = timedelta(0),
    ) -> None:
        self._current = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._step    = step
        self._lock    = threading.Lock()

    def now(self) -> str:
        with self._lock:
            stamp = format_timestamp(self._current)
            self._current += self._step
            return stamp
