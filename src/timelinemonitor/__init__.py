"""Public API for timelinemonitor.

This module re-exports the primary public interfaces:

- ``monitor``: Context manager opening a named block span.
- ``monitored``: Decorator recording each call as a span.
- ``SpanMonitor``: The span handle, with export and elapsed time.
- ``Timeline``, ``Event``, ``EventKind``: The recorded event log.
- ``current_timeline``: The calling task's or thread's default timeline.
- ``to_string``: Plain text report of a timeline.
- ``configure``, ``settings``: Enable/strict switches.

Import from this module rather than the submodules.
"""

from .config import configure, settings
from .dump import to_string
from .errors import SpanClosedError, TimelineContractError
from .span import SpanMonitor, current_timeline, monitor, monitored
from .timeline import Event, EventKind, Timeline

__all__ = [
    "monitor",
    "monitored",
    "SpanMonitor",
    "Timeline",
    "Event",
    "EventKind",
    "current_timeline",
    "to_string",
    "configure",
    "settings",
    "TimelineContractError",
    "SpanClosedError",
]
