"""Span monitors that write BEGIN/END pairs onto a timeline.

This module exposes:

- ``SpanMonitor``: A handle that opens a span on construction and closes
  it exactly once, either naturally or by exporting the timeline.
- ``monitor``: A helper creating a block span, for use with ``with``.
- ``monitored``: A decorator recording each call as a span named after
  the function.
- ``current_timeline``: The calling task's or thread's default timeline.

A monitor bound to no explicit timeline writes to the default timeline of
the asyncio task, or else the thread, that created it. To continue a
trace elsewhere, export it and hand the snapshot over; monitors created
there with ``timeline=snapshot`` keep appending to the same log.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
import time
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager, AbstractContextManager
from contextvars import ContextVar
from functools import wraps
from types import TracebackType
from typing import Any, Literal, ParamSpec, TypeVar, cast, overload

from .config import settings
from .errors import SpanClosedError, TimelineContractError, contract_violation
from .timeline import Timeline

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

# (owner, timeline); the owner is the asyncio task or thread that created it
_default_timeline: ContextVar[tuple[object, Timeline] | None] = ContextVar(
    "_timelinemonitor_default",
    default=None,
)


def _current_owner() -> object:
    try:
        task = asyncio.current_task()
    except RuntimeError:
        task = None
    return task if task is not None else threading.current_thread()


def current_timeline() -> Timeline:
    """Return the default timeline of the calling task or thread.

    The timeline is created on first use. Inside an asyncio task it
    belongs to that task; elsewhere it belongs to the thread. Child tasks
    and threads that inherit the context get a fresh timeline of their
    own, so a default timeline is never shared unless exported.

    Returns:
        Timeline:
            The task-local or thread-local default timeline.
    """
    owner = _current_owner()
    entry = _default_timeline.get()
    if entry is None or entry[0] is not owner:
        entry = (owner, Timeline())
        _default_timeline.set(entry)
    return entry[1]


class SpanMonitor(
    AbstractContextManager["SpanMonitor"],
    AbstractAsyncContextManager["SpanMonitor"],
):
    """Open a named span on a timeline and close it exactly once.

    The BEGIN event is pushed by the constructor. Leaving a ``with`` block
    pushes the END on every exit path, exceptions included, unless the
    span was already closed or exported inside the block.

    When instrumentation is disabled the monitor records nothing: exports
    return an empty timeline and ``elapsed_us`` returns zero.
    """

    __slots__ = ("_name", "_id", "_timeline", "_done")

    def __init__(self, name: str, timeline: Timeline | None = None) -> None:
        """Open the span.

        Args:
            name (str):
                Name of the span, typically a function or block name.
            timeline (Timeline | None):
                Timeline to write to. ``None`` selects the calling task or
                thread's default timeline.
        """
        self._name = name
        self._done = False
        if not settings.enabled:
            self._timeline: Timeline | None = None
            self._id = 0
            return

        self._timeline = timeline if timeline is not None else current_timeline()
        self._id = self._timeline.issue_id()
        self._timeline.push_begin(self._name, self._id)

    @property
    def name(self) -> str:
        """Return the span name."""
        return self._name

    @property
    def id(self) -> int:
        """Return the span id issued by the bound timeline."""
        return self._id

    @property
    def done(self) -> bool:
        """Return whether the span has been closed or exported."""
        return self._done

    @property
    def timeline(self) -> Timeline | None:
        """Return the bound timeline, or ``None`` when disabled."""
        return self._timeline

    def close(self) -> None:
        """Close the span by pushing its END event.

        Raises:
            SpanClosedError:
                In strict mode, if the span is already closed or exported.
        """
        if self._done:
            contract_violation(
                SpanClosedError(f"span {self._name!r} (id={self._id}) already closed"),
                logger,
            )
            return
        self._finish()

    def export_timeline(self) -> Timeline:
        """Close the span and detach a snapshot of the timeline.

        If this span opened the current generation of the bound timeline,
        the source is reset; the snapshot still holds every event up to
        and including this span's END.

        Returns:
            Timeline:
                A detached snapshot, or an empty timeline when disabled.

        Raises:
            SpanClosedError:
                In strict mode, if the span is already closed or exported.
        """
        if self._timeline is None:
            self._done = True
            return Timeline()
        if self._done:
            contract_violation(
                SpanClosedError(
                    f"span {self._name!r} (id={self._id}) exported after close"
                ),
                logger,
            )
            return Timeline()

        self._done = True
        return self._timeline.push_end_and_export(self._name, self._id)

    def elapsed_us(self) -> int:
        """Return microseconds since the earliest event on the timeline.

        This measures from the first event still recorded, which is not
        necessarily this span's own BEGIN.

        Returns:
            int:
                Elapsed microseconds, or 0 if the timeline is empty.
        """
        if self._timeline is None:
            return 0
        first = self._timeline.first
        if first is None:
            return 0
        return time.time_ns() // 1_000 - first.epoch_us

    def _finish(self) -> None:
        if self._done:
            return
        self._done = True
        if self._timeline is not None:
            self._timeline.push_end(self._name, self._id)

    def __enter__(self) -> SpanMonitor:
        """Return the already opened monitor."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> Literal[False]:
        """Close the span unless it was closed or exported in the block.

        While an exception from the block is propagating, a contract
        violation raised by the close is logged instead, so the original
        exception reaches the caller.

        Args:
            exc_type (type[BaseException] | None):
                The exception type if raised.
            exc (BaseException | None):
                The exception instance if raised.
            tb (TracebackType | None):
                The traceback if raised.

        Returns:
            Literal[False]:
                Always returns False to propagate exceptions.
        """
        if exc is None:
            self._finish()
            return False

        try:
            self._finish()
        except TimelineContractError as error:
            logger.warning(
                "ignoring timeline contract violation while %s propagates: %s",
                type(exc).__name__,
                error,
            )
        return False

    async def __aenter__(self) -> SpanMonitor:
        """Return the already opened monitor in async context."""
        return self.__enter__()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> Literal[False]:
        """Close the span in async context."""
        return self.__exit__(exc_type, exc, tb)

    def __repr__(self) -> str:
        state = "done" if self._done else "open"
        return f"SpanMonitor({self._name!r}, id={self._id}, {state})"


def monitor(name: str, timeline: Timeline | None = None) -> SpanMonitor:
    """Open a block span.

    Args:
        name (str):
            Name of the block.
        timeline (Timeline | None):
            Timeline to continue. ``None`` selects the task or thread default.

    Returns:
        SpanMonitor:
            The opened monitor, to be used as a context manager.
    """
    return SpanMonitor(name, timeline)


@overload
def monitored(
    func: Callable[P, R],
    /,
) -> Callable[P, R]: ...


@overload
def monitored(
    *,
    name: str | None = None,
    timeline: Timeline | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]: ...


def monitored(
    func: Callable[..., Any] | None = None,
    /,
    *,
    name: str | None = None,
    timeline: Timeline | None = None,
) -> Any:
    """Record every call of a function as a span.

    Usable bare (``@monitored``) or with options
    (``@monitored(name="load", timeline=shared)``). Coroutine functions
    are supported; the span covers the awaited body.

    Args:
        func (Callable[..., Any] | None):
            The function to wrap when used bare.
        name (str | None):
            Span name. Defaults to the function's ``__qualname__``.
        timeline (Timeline | None):
            Timeline to record on. ``None`` selects the default timeline
            of whichever task or thread makes the call.

    Returns:
        Any:
            The wrapped function, or a decorator when called with options.
    """

    def decorate(target: Callable[..., Any]) -> Callable[..., Any]:
        span_name = name or target.__qualname__
        if inspect.iscoroutinefunction(target):
            return _monitored_async(
                cast(Callable[..., Awaitable[Any]], target), span_name, timeline
            )
        return _monitored_sync(target, span_name, timeline)

    if func is None:
        return decorate
    return decorate(func)


def _monitored_sync(
    func: Callable[P, R],
    name: str,
    timeline: Timeline | None,
) -> Callable[P, R]:
    """Wrap a synchronous function in a span."""

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        with SpanMonitor(name, timeline):
            return func(*args, **kwargs)

    return wrapper


def _monitored_async(
    func: Callable[P, Awaitable[R]],
    name: str,
    timeline: Timeline | None,
) -> Callable[P, Awaitable[R]]:
    """Wrap a coroutine function in a span."""

    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        async with SpanMonitor(name, timeline):
            return await func(*args, **kwargs)

    return wrapper
