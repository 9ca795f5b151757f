"""Ordered begin/end event log with depth tracking.

A ``Timeline`` records one logical trace as a flat sequence of ``Event``
records. Each span contributes a BEGIN and a matching END carrying the
same id. The running depth counter gives every event its nesting level.

When an END arrives whose id matches the id of the first event currently
stored, the outermost span of the current generation has closed and the
log is cleared. The check is positional: it compares against whatever
event happens to be first, not against a tracked root.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

from .errors import TimelineContractError, contract_violation

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Distinguish the opening and closing record of a span."""

    BEGIN = 0
    END = 1


@dataclass(frozen=True, slots=True)
class Event:
    """Represent one record in a timeline.

    Attributes:
        name (str):
            Span name. Not required to be unique.
        kind (EventKind):
            Whether the span opens or closes here.
        id (int):
            Span instance id, shared by a BEGIN and its END.
        depth (int):
            Nesting level. For BEGIN the level being entered, for END the
            level being left.
        timestamp_ns (int):
            Wall clock nanoseconds since the epoch at construction.
    """

    name: str
    kind: EventKind
    id: int
    depth: int
    timestamp_ns: int = field(default_factory=time.time_ns)

    @property
    def epoch_us(self) -> int:
        """Return the timestamp in microseconds since the epoch."""
        return self.timestamp_ns // 1_000


class Timeline:
    """Record BEGIN/END events for one logical trace.

    A timeline is not synchronised. At most one thread may mutate a given
    instance at a time; pass it on by hand-off rather than sharing it.
    """

    __slots__ = ("_events", "_depth", "_next_id")

    def __init__(self) -> None:
        self._events: list[Event] = []
        self._depth = 0
        self._next_id = 1

    def issue_id(self) -> int:
        """Return the next unused span id for this timeline.

        Returns:
            int:
                A strictly increasing id. Issuance is not restarted by an
                auto-reset.
        """
        issued = self._next_id
        self._next_id += 1
        return issued

    def push_begin(self, name: str, id: int) -> None:
        """Append a BEGIN event at the current depth, then descend.

        Args:
            name (str):
                Span name.
            id (int):
                Span id, normally from ``issue_id``.
        """
        self._events.append(Event(name, EventKind.BEGIN, id, self._depth))
        self._depth += 1

    def push_end(self, name: str, id: int) -> None:
        """Ascend, then append an END event at the new depth.

        Clears the whole log if ``id`` matches the first stored event.

        Args:
            name (str):
                Span name, matching the BEGIN.
            id (int):
                Span id, matching the BEGIN.

        Raises:
            TimelineContractError:
                In strict mode, if the log holds no events.
        """
        if not self._append_end(name, id):
            return
        self._clear_if_necessary(id)

    def push_end_and_export(self, name: str, id: int) -> Timeline:
        """Append an END event and detach a snapshot of the result.

        The snapshot is taken after the END is appended but before the
        auto-reset is applied, so it always contains the END even when
        the source timeline is cleared by it.

        Args:
            name (str):
                Span name, matching the BEGIN.
            id (int):
                Span id, matching the BEGIN.

        Returns:
            Timeline:
                An independent copy of the log, depth and id counter.

        Raises:
            TimelineContractError:
                In strict mode, if the log holds no events.
        """
        if not self._append_end(name, id):
            return Timeline()
        snapshot = self.copy()
        logger.debug(
            "exported timeline at span %r (id=%d): %d events, depth %d",
            name,
            id,
            len(snapshot),
            snapshot.depth,
        )
        self._clear_if_necessary(id)
        return snapshot

    def _append_end(self, name: str, id: int) -> bool:
        if not self._events:
            contract_violation(
                TimelineContractError(
                    f"END for span {name!r} (id={id}) pushed to an empty timeline"
                ),
                logger,
            )
            return False
        self._depth -= 1
        self._events.append(Event(name, EventKind.END, id, self._depth))
        return True

    def _clear_if_necessary(self, id: int) -> None:
        if self._events[0].id == id:
            logger.debug("span id=%d closed the timeline, resetting", id)
            self._events.clear()

    def copy(self) -> Timeline:
        """Return a detached copy of this timeline's full state."""
        clone = Timeline()
        clone._events = list(self._events)
        clone._depth = self._depth
        clone._next_id = self._next_id
        return clone

    @property
    def events(self) -> tuple[Event, ...]:
        """Return the stored events in insertion order."""
        return tuple(self._events)

    @property
    def first(self) -> Event | None:
        """Return the earliest stored event, or ``None`` if empty."""
        return self._events[0] if self._events else None

    @property
    def depth(self) -> int:
        """Return the current nesting depth."""
        return self._depth

    def get_elems(self) -> tuple[Event, ...]:
        """Return the stored events in insertion order."""
        return self.events

    def get_depth(self) -> int:
        """Return the current nesting depth."""
        return self._depth

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(tuple(self._events))

    def __bool__(self) -> bool:
        return bool(self._events)

    def __repr__(self) -> str:
        return f"Timeline(events={len(self._events)}, depth={self._depth})"
