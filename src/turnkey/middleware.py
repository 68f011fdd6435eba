"""Ready-made middleware for Store.use().

A middleware is called as middleware(action, next). It may pass the action
(or a replacement) on with next(), which returns a future for the rest of the
chain, or return something of its own instead.

Usage:
    store = Store({"x": 0})
    store.use(create_thunk_middleware(store))
    store.use(deferred_middleware)

    cancel = await store.dispatch({"type": "X", "meta": {"delay": 0.5}})
    cancel()  # changed our minds; the reducers never see it
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable

if TYPE_CHECKING:
    from turnkey.store import Middleware, Next, Store

logger = logging.getLogger("turnkey.middleware")


def _delay_of(action: Any) -> float | None:
    if not isinstance(action, dict):
        return None
    meta = action.get("meta")
    if not isinstance(meta, dict):
        return None
    delay = meta.get("delay")
    if isinstance(delay, bool) or not isinstance(delay, (int, float)):
        return None
    return delay


def deferred_middleware(action: Any, next: Next) -> Any:
    """Hold back actions whose meta carries a numeric delay, in seconds.

    A deferred action resolves dispatch() with a cancel() function right away;
    the action continues down the chain once the delay elapses, unless
    cancel() was called first. Other actions pass straight through. Nobody
    awaits the deferred part of the chain, so its failures are logged.
    """
    delay = _delay_of(action)
    if delay is None:
        return next(action)

    action_type = action.get("type")
    logger.debug("Deferring %r by %ss", action_type, delay)

    def _report(future: asyncio.Future[Any]) -> None:
        if future.cancelled():
            return
        err = future.exception()
        if err is not None:
            logger.error("Deferred dispatch of %r failed: %s", action_type, err)

    def _resume() -> None:
        next(action).add_done_callback(_report)

    handle = asyncio.get_running_loop().call_later(delay, _resume)

    def cancel() -> None:
        if not handle.cancelled():
            logger.debug("Cancelled deferred %r", action.get("type"))
        handle.cancel()

    return cancel


def create_thunk_middleware(store: Store) -> Middleware:
    """Middleware that calls function actions with the store.

    The function's return value becomes the result of dispatch().
    """

    def thunk_middleware(action: Any, next: Next) -> Any:
        if callable(action):
            return action(store)
        return next(action)

    return thunk_middleware


def create_awaitable_middleware(store: Store) -> Middleware:
    """Middleware that awaits awaitable actions, then dispatches the result.

    A dict result is dispatched as a copy with meta["resolved"] set to True.
    """

    async def _dispatch_resolved(pending: Awaitable[Any]) -> Any:
        resolved = await pending
        if isinstance(resolved, dict):
            meta = dict(resolved.get("meta") or {})
            meta["resolved"] = True
            resolved = {**resolved, "meta": meta}
        return await store.dispatch(resolved)

    def awaitable_middleware(action: Any, next: Next) -> Any:
        if inspect.isawaitable(action):
            return _dispatch_resolved(action)
        return next(action)

    return awaitable_middleware


def create_logging_middleware(
    log: logging.Logger | None = None, level: int = logging.DEBUG
) -> Middleware:
    """Middleware that logs each action before and after the rest of the chain."""
    log = log or logger

    def _describe(action: Any) -> str:
        if isinstance(action, dict):
            return repr(action.get("type"))
        return type(action).__name__

    async def _after(description: str, pending: Awaitable[Any]) -> Any:
        try:
            result = await pending
        except Exception as err:
            log.log(level, "Dispatch of %s failed: %s", description, err)
            raise
        log.log(level, "Dispatched %s", description)
        return result

    def logging_middleware(action: Any, next: Callable[..., Any]) -> Any:
        description = _describe(action)
        log.log(level, "Dispatching %s", description)
        return _after(description, next(action))

    return logging_middleware
