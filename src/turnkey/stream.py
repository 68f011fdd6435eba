"""Push-based event stream with operator chaining.

Store.stream(key) hands out one of these fed by the key's change
notifications. Each operator returns a new stream (immutable chain) and
dispose() tears down the entire chain, including the store subscription at
its root.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")

Disposer = Callable[[], None]


class EventStream(Generic[T]):
    """Push-based event stream with operator chaining."""

    def __init__(self) -> None:
        self._subscribers: list[Callable[[T], None]] = []
        self._children: list[EventStream] = []  # downstream streams for dispose
        self._disposed = False
        self._parent_disposer: Disposer | None = None

    def emit(self, value: T) -> None:
        """Push a value to all subscribers."""
        if self._disposed:
            return
        for cb in list(self._subscribers):
            cb(value)

    def subscribe(self, callback: Callable[[T], None]) -> Disposer:
        """Register a callback. Returns a function that removes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass  # already removed

        return _unsubscribe

    def debounce(self, seconds: float) -> EventStream[T]:
        """Coalesce rapid events: emit after a quiet period.

        Timers run on the event loop that is running when the first event
        arrives. Each new event cancels the previous timer, so only the last
        event in a burst fires.
        """
        child: EventStream[T] = EventStream()
        timer_ref: list[asyncio.TimerHandle | None] = [None]

        def _on_event(value: T) -> None:
            if timer_ref[0] is not None:
                timer_ref[0].cancel()
            loop = asyncio.get_running_loop()
            timer_ref[0] = loop.call_later(seconds, child.emit, value)

        untrack = self._track_child(child)
        unsubscribe = self.subscribe(_on_event)

        def _teardown() -> None:
            if timer_ref[0] is not None:
                timer_ref[0].cancel()
            unsubscribe()
            untrack()

        child.on_dispose(_teardown)
        return child

    def map(self, fn: Callable[[T], U]) -> EventStream[U]:
        """Transform events through fn."""
        child: EventStream[U] = EventStream()
        child.on_dispose(self._chain(child, lambda v: child.emit(fn(v))))
        return child

    def filter(self, fn: Callable[[T], bool]) -> EventStream[T]:
        """Only pass events where fn returns True."""
        child: EventStream[T] = EventStream()
        child.on_dispose(self._chain(child, lambda v: child.emit(v) if fn(v) else None))
        return child

    def dispose(self) -> None:
        """Tear down this stream and all downstream children."""
        self._disposed = True
        self._subscribers.clear()
        for child in list(self._children):
            child.dispose()
        self._children.clear()
        if self._parent_disposer is not None:
            self._parent_disposer()
            self._parent_disposer = None

    def on_dispose(self, disposer: Disposer) -> None:
        """Run disposer once, when this stream is disposed."""
        self._parent_disposer = disposer

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _chain(self, child: EventStream, callback: Callable[[T], None]) -> Disposer:
        """Feed child from this stream. Returns a disposer that detaches it."""
        untrack = self._track_child(child)
        unsubscribe = self.subscribe(callback)

        def _detach() -> None:
            unsubscribe()
            untrack()

        return _detach

    def _track_child(self, child: EventStream) -> Disposer:
        """Register child for dispose propagation. Returns a disposer that removes it."""
        self._children.append(child)

        def _remove() -> None:
            try:
                self._children.remove(child)
            except ValueError:
                pass

        return _remove
