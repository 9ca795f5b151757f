"""Plain text rendering of a timeline.

Each BEGIN becomes ``<indent><name>, <begin_us>`` and each END becomes
``<indent><name>, <end_us>, <elapsed_us>``, indented by one space per
nesting level. This is a reference consumer of the read API; other
renderers can be built on ``Timeline.events`` the same way.
"""

from __future__ import annotations

from collections.abc import Iterator

from .timeline import Event, EventKind, Timeline


def iter_lines(timeline: Timeline) -> Iterator[str]:
    """Yield one report line per event.

    END events whose BEGIN is not in the timeline, e.g. because the
    snapshot was taken after a partial reset, are skipped.

    Args:
        timeline (Timeline):
            The timeline or snapshot to render.

    Yields:
        str:
            Report lines in event order.
    """
    open_spans: dict[int, Event] = {}
    for event in timeline:
        if event.kind is EventKind.BEGIN:
            open_spans[event.id] = event
            yield f"{' ' * event.depth}{event.name}, {event.epoch_us}"
            continue

        begin = open_spans.get(event.id)
        if begin is None:
            continue
        yield (
            f"{' ' * begin.depth}{begin.name}, {event.epoch_us}, "
            f"{event.epoch_us - begin.epoch_us}"
        )


def to_string(timeline: Timeline) -> str:
    """Render a timeline as newline separated report lines."""
    return "\n".join(iter_lines(timeline))
