"""Per-key listener registry.

Listeners are kept in registration order under their key. notify() walks a
snapshot of the list so a listener may unsubscribe itself, or others, while
being notified.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable
from typing import Any

Listener = Callable[[Any], None]
Disposer = Callable[[], None]

_ALL = object()


class ListenerRegistry:
    """Mapping of key -> ordered listener callbacks."""

    __slots__ = ("_listeners",)

    def __init__(self) -> None:
        self._listeners: dict[Hashable, list[Listener]] = {}

    def add(self, key: Hashable, callback: Listener) -> Disposer:
        """Register callback under key. Returns a function that removes it."""
        self._listeners.setdefault(key, []).append(callback)
        removed = False

        def _remove() -> None:
            nonlocal removed
            if not removed:
                removed = True
                self.remove(key, callback)

        return _remove

    def remove(self, key: Hashable, callback: Listener) -> None:
        """Remove the first registration of callback under key, if any."""
        callbacks = self._listeners.get(key)
        if not callbacks:
            return
        try:
            callbacks.remove(callback)
        except ValueError:
            return
        if not callbacks:
            del self._listeners[key]

    def clear(self) -> None:
        self._listeners.clear()

    def notify(self, key: Hashable, value: Any) -> None:
        """Call every listener of key with value, in registration order."""
        for callback in list(self._listeners.get(key, ())):
            callback(value)

    def count(self, key: Hashable = _ALL) -> int:
        """Number of registrations for key, or across all keys."""
        if key is _ALL:
            return sum(len(callbacks) for callbacks in self._listeners.values())
        return len(self._listeners.get(key, ()))
