"""Context management for a default Store.

Stores are plain objects; nothing in turnkey needs a shared instance. These
helpers are for applications that want one store reachable from anywhere
without threading it through every call.
"""

from __future__ import annotations

import contextlib
import contextvars
from collections.abc import Generator

from turnkey.store import Store

__all__ = ["get_store", "store_context"]

# Context variable for the current default store
_store_ctx: contextvars.ContextVar[Store | None] = contextvars.ContextVar(
    "_store_ctx", default=None
)


def get_store() -> Store:
    """Get the current default store.

    If no store is set in the context variable, creates a new empty one.
    """
    instance = _store_ctx.get()
    if instance is None:
        instance = Store()
        _store_ctx.set(instance)
    return instance


@contextlib.contextmanager
def store_context(store: Store | None = None) -> Generator[Store, None, None]:
    """Install store (or a new empty one) as the default store for a block.

    The previous default is restored on exit.
    """
    store = store or Store()
    token = _store_ctx.set(store)
    try:
        yield store
    finally:
        _store_ctx.reset(token)
