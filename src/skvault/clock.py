"""
Liveness clock — when did the owner last do something privileged?

Time is integer seconds. The vault never reads the wall clock directly:
it asks a clock source, so tests and simulations can drive time by hand.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol

from .errors import ClockUnderflow

logger = logging.getLogger("skvault.clock")

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR


class ClockSource(Protocol):
    """Anything that can say what time it is now."""

    def now(self) -> int: ...


class SystemClock:
    """Wall-clock time, truncated to whole seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """A clock that only moves when told to.

    Args:
        start: Initial timestamp in seconds.
    """

    def __init__(self, start: int = 0) -> None:
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        self._now = timestamp

    def advance(self, seconds: int) -> int:
        """Move forward and return the new time."""
        if seconds < 0:
            raise ValueError("ManualClock cannot run backwards")
        self._now += seconds
        return self._now


class LivenessClock:
    """Tracks the timestamp of the last confirmed owner activity.

    Args:
        last_activity: Starting value (restored state or 0).
    """

    def __init__(self, last_activity: int = 0) -> None:
        self.last_activity = last_activity

    def touch(self, now: int) -> None:
        """Record owner activity at ``now``.

        Raises:
            ClockUnderflow: If ``now`` is earlier than the recorded activity.
        """
        if now < self.last_activity:
            raise ClockUnderflow(
                f"activity at {now} precedes last activity {self.last_activity}"
            )
        logger.debug("Liveness refreshed: %d -> %d", self.last_activity, now)
        self.last_activity = now

    def elapsed_since(self, now: int) -> int:
        """Seconds between the last activity and ``now``.

        Raises:
            ClockUnderflow: If ``now`` is earlier than the recorded activity.
        """
        if now < self.last_activity:
            raise ClockUnderflow(
                f"time {now} precedes last activity {self.last_activity}"
            )
        return now - self.last_activity


_UNITS = {"s": 1, "m": MINUTE, "h": HOUR, "d": DAY, "w": 7 * DAY}


def parse_duration(value: int | str) -> int:
    """Turn ``"30d"``, ``"12h"``, ``"90m"``, ``"45s"`` or a plain int into seconds.

    Raises:
        ValueError: If the value is negative or not understood.
    """
    if isinstance(value, bool):
        raise ValueError(f"not a duration: {value!r}")
    if isinstance(value, int):
        seconds = value
    else:
        text = str(value).strip().lower()
        if text.isdigit():
            seconds = int(text)
        elif text[:-1].isdigit() and text[-1:] in _UNITS:
            seconds = int(text[:-1]) * _UNITS[text[-1]]
        else:
            raise ValueError(f"not a duration: {value!r}")
    if seconds < 0:
        raise ValueError(f"duration cannot be negative: {value!r}")
    return seconds
