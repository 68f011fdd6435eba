"""turnkey: an in-memory key-value store with reducers and coalesced change events."""

from importlib.metadata import version as _version

__version__ = _version("turnkey")

from turnkey.store import Action, Store
from turnkey.stream import EventStream
from turnkey.context import get_store, store_context
from turnkey.middleware import (
    create_awaitable_middleware,
    create_logging_middleware,
    create_thunk_middleware,
    deferred_middleware,
)
from turnkey.exceptions import (
    DirectEmissionError,
    DoubleNextError,
    InvalidActionShapeError,
    MissingDiscriminatorError,
    ReentrantDispatchError,
    TurnkeyException,
)
# textual NOT auto-imported: opt-in only

__all__ = [
    "Action",
    "Store",
    "EventStream",
    "get_store",
    "store_context",
    "create_awaitable_middleware",
    "create_logging_middleware",
    "create_thunk_middleware",
    "deferred_middleware",
    "DirectEmissionError",
    "DoubleNextError",
    "InvalidActionShapeError",
    "MissingDiscriminatorError",
    "ReentrantDispatchError",
    "TurnkeyException",
]
