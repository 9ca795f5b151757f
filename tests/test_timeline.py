import logging
import random

import pytest

from timelinemonitor import EventKind, Timeline, TimelineContractError, configure


def test_issue_id_is_strictly_increasing() -> None:
    timeline = Timeline()

    assert [timeline.issue_id() for _ in range(3)] == [1, 2, 3]


def test_outer_inner_scenario() -> None:
    timeline = Timeline()
    outer = timeline.issue_id()
    timeline.push_begin("outer", outer)
    inner = timeline.issue_id()
    timeline.push_begin("inner", inner)
    timeline.push_end("inner", inner)

    assert [(e.name, e.kind, e.id, e.depth) for e in timeline] == [
        ("outer", EventKind.BEGIN, 1, 0),
        ("inner", EventKind.BEGIN, 2, 1),
        ("inner", EventKind.END, 2, 1),
    ]
    assert timeline.depth == 1

    snapshot = timeline.push_end_and_export("outer", outer)

    assert len(snapshot) == 4
    assert snapshot.depth == 0
    assert snapshot.events[-1].depth == 0
    assert len(timeline) == 0
    assert timeline.depth == 0


def test_push_end_resets_on_first_span() -> None:
    timeline = Timeline()
    outer = timeline.issue_id()
    timeline.push_begin("outer", outer)
    for _ in range(5):
        inner = timeline.issue_id()
        timeline.push_begin("inner", inner)
        timeline.push_end("inner", inner)

    assert len(timeline) == 11

    timeline.push_end("outer", outer)

    assert not timeline
    assert timeline.get_elems() == ()
    assert timeline.get_depth() == 0


def test_ids_continue_after_reset() -> None:
    timeline = Timeline()
    first = timeline.issue_id()
    timeline.push_begin("a", first)
    timeline.push_end("a", first)

    assert timeline.issue_id() == first + 1


def test_snapshot_is_frozen() -> None:
    timeline = Timeline()
    outer = timeline.issue_id()
    timeline.push_begin("outer", outer)
    inner = timeline.issue_id()
    timeline.push_begin("inner", inner)

    snapshot = timeline.push_end_and_export("inner", inner)
    before = snapshot.events

    later = timeline.issue_id()
    timeline.push_begin("later", later)
    timeline.push_end("later", later)
    timeline.push_end("outer", outer)

    assert snapshot.events == before
    assert len(snapshot) == 3
    assert snapshot.depth == 1
    assert not timeline


def test_snapshot_keeps_issuing_fresh_ids() -> None:
    timeline = Timeline()
    span_id = timeline.issue_id()
    timeline.push_begin("a", span_id)

    snapshot = timeline.push_end_and_export("a", span_id)

    assert snapshot.issue_id() == span_id + 1


def test_reset_is_positional() -> None:
    timeline = Timeline()
    x = timeline.issue_id()
    timeline.push_begin("x", x)
    y = timeline.issue_id()
    timeline.push_begin("y", y)

    # closing x while y is still open clears the log anyway
    timeline.push_end("x", x)

    assert not timeline
    assert timeline.depth == 1

    z = timeline.issue_id()
    timeline.push_begin("z", z)
    timeline.push_end("y", y)

    assert len(timeline) == 2
    assert timeline.depth == 1


def test_push_end_on_empty_timeline_raises() -> None:
    timeline = Timeline()

    with pytest.raises(TimelineContractError):
        timeline.push_end("orphan", 1)
    with pytest.raises(TimelineContractError):
        timeline.push_end_and_export("orphan", 1)
    assert timeline.depth == 0


def test_push_end_on_empty_timeline_lenient(caplog: pytest.LogCaptureFixture) -> None:
    configure(strict=False)
    timeline = Timeline()

    with caplog.at_level(logging.WARNING, logger="timelinemonitor"):
        timeline.push_end("orphan", 1)
        snapshot = timeline.push_end_and_export("orphan", 1)

    assert not timeline
    assert timeline.depth == 0
    assert not snapshot
    assert "orphan" in caplog.text


def test_events_view_is_read_only() -> None:
    timeline = Timeline()
    timeline.push_begin("a", timeline.issue_id())

    events = timeline.events

    assert isinstance(events, tuple)
    assert timeline.first is events[0]
    assert events[0].epoch_us == events[0].timestamp_ns // 1000


def _random_nesting(timeline: Timeline, rng: random.Random, levels: int) -> int:
    opened = 0
    for _ in range(rng.randint(0, 3)):
        span_id = timeline.issue_id()
        timeline.push_begin("node", span_id)
        opened += 1
        if levels:
            opened += _random_nesting(timeline, rng, levels - 1)
        timeline.push_end("node", span_id)
    return opened


@pytest.mark.parametrize("seed", range(8))
def test_random_nesting_balances(seed: int) -> None:
    rng = random.Random(seed)
    timeline = Timeline()
    root = timeline.issue_id()
    timeline.push_begin("root", root)

    spans = 1 + _random_nesting(timeline, rng, 4)
    snapshot = timeline.push_end_and_export("root", root)

    assert len(snapshot) == 2 * spans
    assert snapshot.depth == 0
    assert not timeline
    assert timeline.depth == 0

    open_spans = 0
    for event in snapshot:
        if event.kind is EventKind.BEGIN:
            assert event.depth == open_spans
            open_spans += 1
        else:
            open_spans -= 1
            assert event.depth == open_spans
    assert open_spans == 0
