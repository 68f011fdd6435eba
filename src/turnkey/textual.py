"""Textual integration for turnkey. Opt-in — requires textual.

Store listeners that touch widgets need three guards: skip while the app
isn't running or is replacing widgets, ignore NoMatches from queries against
widgets that are gone, and hop onto the app's thread when notified from
another one. They live here so the core store stays agnostic of Textual.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

# Module-owned pause state, keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded listeners during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def subscribe(app, store, key, effect):
    """store.subscribe() that safely bridges to Textual widgets.

    Returns the store's disposer for the subscription.
    """
    _main = threading.get_ident()

    def _guarded(value):
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_safe, value)
        else:
            _safe(value)

    def _safe(value):
        try:
            effect(value)
        except NoMatches:
            pass

    return store.subscribe(key, _guarded)
