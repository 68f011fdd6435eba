"""Exceptions raised by turnkey stores."""

from __future__ import annotations

__all__ = [
    "TurnkeyException",
    "ReentrantDispatchError",
    "DoubleNextError",
    "InvalidActionShapeError",
    "MissingDiscriminatorError",
    "DirectEmissionError",
]


class TurnkeyException(Exception):
    """Generic base exception used for this library."""


class ReentrantDispatchError(TurnkeyException):
    """Raised when a reducer calls dispatch() on its own store."""

    def __init__(self) -> None:
        super().__init__("Reducers can't dispatch actions")


class DoubleNextError(TurnkeyException):
    """Raised when a middleware calls next() more than once."""

    def __init__(self) -> None:
        super().__init__("next() called more than once")


class InvalidActionShapeError(TurnkeyException, TypeError):
    """Raised when an action reaching the reducers is not a plain dict."""

    def __init__(self, action: object) -> None:
        super().__init__("action is not a plain dict")
        self.action = action


class MissingDiscriminatorError(TurnkeyException, ValueError):
    """Raised when an action reaching the reducers has no 'type' key."""

    def __init__(self, action: dict) -> None:
        super().__init__("action doesn't include a 'type' key")
        self.action = action


class DirectEmissionError(TurnkeyException):
    """Raised when emit() is called outside of a settling write."""

    def __init__(self, key: object) -> None:
        super().__init__(f"Can't emit key {key!r} without setting it")
        self.key = key
