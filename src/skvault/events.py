"""
Append-only vault notifications.

Events are what external indexers see. The log only grows: entries are
never edited or removed, and sequence numbers strictly increase. Events from
a call that fails are never recorded; the vault buffers them and hands
them over only once the call has committed.

An optional JSONL sink mirrors every event to disk, one JSON object per
line, the same way the audit log is written.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, Optional

from .models import EventKind, VaultEvent

logger = logging.getLogger("skvault.events")

Listener = Callable[[VaultEvent], None]


class EventLog:
    """In-memory notification log with listeners and an optional file sink.

    Args:
        sink: JSONL file to append every committed event to.
        events: Previously recorded events (when restoring a deployment).
    """

    def __init__(
        self,
        sink: Optional[Path] = None,
        events: Optional[Iterable[VaultEvent]] = None,
    ) -> None:
        self._events: list[VaultEvent] = list(events or [])
        self._sink = sink
        self._listeners: dict[Optional[EventKind], list[Listener]] = {}

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(self._events)

    @property
    def next_sequence(self) -> int:
        return self._events[-1].sequence + 1 if self._events else 0

    def subscribe(self, callback: Listener, kind: Optional[EventKind] = None) -> None:
        """Call ``callback`` for every committed event (or one kind only)."""
        self._listeners.setdefault(kind, []).append(callback)

    def commit(self, events: Iterable[VaultEvent]) -> list[VaultEvent]:
        """Append a committed batch, numbering it after the current tail.

        Returns:
            list[VaultEvent]: The recorded events with sequence numbers.
        """
        start = self.next_sequence
        recorded = [
            event.model_copy(update={"sequence": start + offset})
            for offset, event in enumerate(events)
        ]

        # the sink is written before the batch joins the in-memory log
        if self._sink is not None and recorded:
            self._sink.parent.mkdir(parents=True, exist_ok=True)
            with self._sink.open("a") as f:
                f.write("".join(event.model_dump_json() + "\n" for event in recorded))

        self._events.extend(recorded)
        for event in recorded:
            self._notify(event)
        return recorded

    def filter(self, kind: Optional[EventKind] = None, limit: int = 0) -> list[VaultEvent]:
        """Recorded events, optionally of one kind, newest last.

        Args:
            kind: Only events of this kind.
            limit: Keep only the most recent N (0 = all).
        """
        events = [e for e in self._events if kind is None or e.kind == kind]
        if limit > 0:
            events = events[-limit:]
        return events

    def last(self, kind: Optional[EventKind] = None) -> Optional[VaultEvent]:
        matches = self.filter(kind)
        return matches[-1] if matches else None

    def _notify(self, event: VaultEvent) -> None:
        for key in (None, event.kind):
            for callback in self._listeners.get(key, []):
                try:
                    callback(event)
                except Exception as exc:
                    logger.warning("Event listener failed on %s: %s", event.kind.value, exc)


def read_event_file(path: Path, limit: int = 0) -> list[VaultEvent]:
    """Parse a JSONL event file.

    Unparseable lines are skipped with a warning.

    Args:
        path: The events.jsonl file.
        limit: Keep only the most recent N (0 = all).
    """
    if not path.exists():
        return []

    events = []
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            events.append(VaultEvent.model_validate_json(line))
        except ValueError as exc:
            logger.warning("Skipping unreadable event line: %s", exc)
    if limit > 0:
        events = events[-limit:]
    return events
