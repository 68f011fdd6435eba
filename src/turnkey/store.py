"""Store — key-value model with coalesced writes and an action pipeline.

Actions pass through middleware registered with use() and reach reducers
registered with bind(). Reducers write through set(). Every write made during
one event loop turn lands in the model immediately, but listeners of a key
hear about it only on the following turn, once, and only if the net value
differs from the one the key held before the first write.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Hashable, Mapping
from typing import Any, NotRequired, TypedDict

from turnkey._listeners import Disposer, Listener, ListenerRegistry
from turnkey.exceptions import (
    DirectEmissionError,
    DoubleNextError,
    InvalidActionShapeError,
    MissingDiscriminatorError,
    ReentrantDispatchError,
)
from turnkey.stream import EventStream

logger = logging.getLogger("turnkey.store")


class Action(TypedDict):
    """Shape of the actions reducers receive."""

    type: str
    payload: NotRequired[Any]
    meta: NotRequired[dict[str, Any]]


Key = Hashable
Getter = Callable[[Key], Any]
Setter = Callable[[Key, Any], "asyncio.Future[Any]"]
Reducer = Callable[[Getter, Setter, Action], None]
Next = Callable[..., "asyncio.Future[Any]"]
Middleware = Callable[[Any, Next], Any]

# Compared by value; anything else only counts as unchanged when it is the
# very same object.
_SCALARS = (type(None), bool, int, float, complex, str, bytes)

_UNSET = object()


def _changed(prev_value: Any, next_value: Any) -> bool:
    if prev_value is next_value:
        return False
    if type(prev_value) is type(next_value) and type(prev_value) in _SCALARS:
        return prev_value != next_value
    return True


def _resolved(loop: asyncio.AbstractEventLoop, value: Any) -> asyncio.Future[Any]:
    future = loop.create_future()
    future.set_result(value)
    return future


def _failed(loop: asyncio.AbstractEventLoop, error: BaseException) -> asyncio.Future[Any]:
    future = loop.create_future()
    future.set_exception(error)
    return future


class Store:
    """Key-value model with coalesced writes and an action pipeline."""

    def __init__(
        self,
        model: Mapping[Key, Any] | None = None,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._loop = loop
        self._generation = 0
        self._listeners = ListenerRegistry()
        self.initialize(model)

    # --- Model ---

    def initialize(self, model: Mapping[Key, Any] | None = None) -> None:
        """Reset model, listeners, middleware and reducers.

        Writes still waiting for their turn-end step are discarded: their
        futures settle without notifying anyone.
        """
        self._generation += 1
        self._model: dict[Key, Any] = dict(model) if model else {}
        self._prev_value_by_key: dict[Key, Any] = {}
        self._emitting_by_key: dict[Key, bool] = {}
        self._is_dispatching = False
        self._middleware: list[Middleware] = []
        self._reducers_by_type: dict[Any, list[Reducer]] = {}
        self._pending: set[asyncio.Future[Any]] = set()
        self._listeners.clear()

    def keys(self) -> list[Key]:
        """Model keys in insertion order."""
        return list(self._model)

    def get(self, key: Key) -> Any:
        """Current value of key, or None if it was never set."""
        return self._model.get(key)

    def set(self, key: Key, edit: Any) -> asyncio.Future[Any]:
        """Write edit under key; notify listeners on the next turn if it changed.

        edit is either the next value or a function of the current value
        returning the next value. The model is updated right away, so later
        reads in this turn see it. If set() is called several times for key
        during one turn, only the final value is compared with the value key
        held before the first call.

        Returns a future for the value stored under key once the turn is over.
        If edit raises, the future fails with that error and the model is left
        as it was. If edit returns an awaitable, its result is written when it
        becomes available and coalesces with the writes of that later turn.
        """
        loop = self._get_loop()
        if not callable(edit):
            return self._stage(loop, key, edit)

        try:
            next_value = edit(self._model.get(key))
        except Exception as err:
            logger.debug("Edit of %r failed: %s", key, err)
            return _failed(loop, err)

        if inspect.isawaitable(next_value):
            task = loop.create_task(self._stage_when_ready(key, next_value, self._generation))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            return task
        return self._stage(loop, key, next_value)

    def _stage(self, loop: asyncio.AbstractEventLoop, key: Key, value: Any) -> asyncio.Future[Any]:
        if key not in self._prev_value_by_key:
            self._prev_value_by_key[key] = self._model.get(key)
        self._model[key] = value

        future = loop.create_future()
        self._pending.add(future)
        loop.call_soon(self._settle, key, future, self._generation)
        return future

    async def _stage_when_ready(self, key: Key, pending: Awaitable[Any], generation: int) -> Any:
        value = await pending
        if generation != self._generation:
            logger.debug("Dropping asynchronous edit of %r made before initialize()", key)
            return self._model.get(key)
        return await self._stage(self._get_loop(), key, value)

    def _settle(self, key: Key, future: asyncio.Future[Any], generation: int) -> None:
        """Turn-end step: decide whether the writes to key changed it."""
        self._pending.discard(future)
        next_value = self._model.get(key)
        try:
            if generation == self._generation and key in self._prev_value_by_key:
                prev_value = self._prev_value_by_key.pop(key)
                if _changed(prev_value, next_value):
                    self._emitting_by_key[key] = True
                    try:
                        self.emit(key, next_value)
                    finally:
                        self._emitting_by_key[key] = False
        except Exception as err:
            if not future.done():
                future.set_exception(err)
            return
        if not future.done():
            future.set_result(next_value)

    async def flush(self) -> None:
        """Wait until every outstanding write has settled.

        Failed writes keep their errors on their own futures; flush() doesn't
        raise them.
        """
        if not self._pending:
            await asyncio.sleep(0)
            return
        while self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    # --- Events ---

    def subscribe(self, key: Key, callback: Listener) -> Disposer:
        """Call callback(value) whenever key settles on a new value.

        Returns a function that removes the subscription.
        """
        return self._listeners.add(key, callback)

    def unsubscribe(self, key: Key, callback: Listener) -> None:
        self._listeners.remove(key, callback)

    def stream(self, key: Key) -> EventStream[Any]:
        """EventStream of the values key settles on. dispose() unsubscribes."""
        stream: EventStream[Any] = EventStream()
        stream.on_dispose(self.subscribe(key, stream.emit))
        return stream

    def emit(self, key: Key, value: Any) -> None:
        """Notify the listeners of key.

        Don't call this directly; it runs when a write made with set() turns
        out to have changed key.
        """
        if not self._emitting_by_key.get(key):
            raise DirectEmissionError(key)
        logger.debug("Emitting change of %r", key)
        self._listeners.notify(key, value)

    # --- Actions ---

    def bind(self, reducers: Mapping[Any, Reducer]) -> Store:
        """Register reducers by action type. Returns self for chaining.

        Binding a type twice adds a second reducer rather than replacing the
        first; all of them run, in the order they were bound.
        """
        for action_type, reducer in reducers.items():
            self._reducers_by_type.setdefault(action_type, []).append(reducer)
        return self

    def use(self, middleware: Middleware) -> None:
        """Append middleware to the chain every dispatched action goes through.

        middleware(action, next) may pass the action on with next(), optionally
        giving next() a replacement action, or return a result of its own
        without calling next() at all.
        """
        self._middleware.append(middleware)

    def dispatch(self, action: Any) -> asyncio.Future[Any]:
        """Send action through middleware, then to the reducers bound to its type.

        Returns a future for the original action. A middleware that handles
        the action itself may resolve it to something else, such as a
        cancel() function for a deferred action.

        Raises ReentrantDispatchError when called from inside a reducer.
        """
        if self._is_dispatching:
            raise ReentrantDispatchError()

        loop = self._get_loop()
        middleware = list(self._middleware)
        index = -1

        def call(next_index: int, next_action: Any) -> asyncio.Future[Any]:
            nonlocal index
            if next_index <= index:
                return _failed(loop, DoubleNextError())
            index = next_index

            if next_index == len(middleware):
                try:
                    self._reduce(next_action)
                except Exception as err:
                    return _failed(loop, err)
                return _resolved(loop, action)

            def next_(replacement: Any = _UNSET) -> asyncio.Future[Any]:
                return call(next_index + 1, next_action if replacement is _UNSET else replacement)

            try:
                result = middleware[next_index](next_action, next_)
            except Exception as err:
                return _failed(loop, err)
            if inspect.isawaitable(result):
                return asyncio.ensure_future(result, loop=loop)
            return _resolved(loop, result)

        return call(0, action)

    def _reduce(self, action: Any) -> None:
        if type(action) is not dict:
            raise InvalidActionShapeError(action)
        if "type" not in action:
            raise MissingDiscriminatorError(action)

        reducers = list(self._reducers_by_type.get(action["type"], ()))
        logger.debug("Reducing %r with %d reducer(s)", action["type"], len(reducers))
        for reducer in reducers:
            self._is_dispatching = True
            try:
                reducer(self.get, self.set, action)
            finally:
                self._is_dispatching = False

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop if self._loop is not None else asyncio.get_running_loop()

    def __repr__(self) -> str:
        reducers = sum(len(r) for r in self._reducers_by_type.values())
        return (
            f"Store(keys={self.keys()!r}, reducers={reducers}, "
            f"middleware={len(self._middleware)})"
        )
