"""Subscriber registries — ordered sets of callbacks with snapshot broadcast.

Each Atom owns three of these. Callbacks are keyed by identity, so adding the
same callback twice keeps a single entry. broadcast() iterates a snapshot
taken when it starts: callbacks added or removed by a subscriber during the
broadcast do not change who receives the in-flight payload.

A subscriber that raises is isolated: the failure is logged, handed to the
configured error handler, and the remaining subscribers are still notified.
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

logger = logging.getLogger("precoil.registry")

T = TypeVar("T")

ErrorHandler = Callable[[Exception, Callable, object], None]

# ─── Error reporting ─────────────────────────────────────────────────────────
_error_handler: ErrorHandler | None = None


def set_error_handler(handler: ErrorHandler | None) -> None:
    """Set the global handler for exceptions raised by subscribers.

    Called as handler(exc, callback, owner) after the failure is logged.
    The handler may re-raise to abort the broadcast:

        def strict(exc, callback, owner):
            raise exc

        precoil.set_error_handler(strict)

    Pass None to restore the default (log and continue).
    """
    global _error_handler
    _error_handler = handler


def _report(exc: Exception, callback: Callable, owner: object) -> None:
    logger.exception("Subscriber %r of %r raised", callback, owner)
    if _error_handler is not None:
        _error_handler(exc, callback, owner)


class Subscription:
    """Handle for one registration. Call it (or dispose()) to unsubscribe.

    Also a context manager, so a subscription can be scoped to a block:

        with store.subscribe(print):
            store.set_value(1)  # printed
        store.set_value(2)      # not printed
    """

    __slots__ = ("_release", "_active")

    def __init__(self, release: Callable[[], None]) -> None:
        self._release = release
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def dispose(self) -> None:
        """Remove the registration. Further calls are no-ops."""
        if not self._active:
            return
        self._active = False
        self._release()

    __call__ = dispose

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info) -> None:
        self.dispose()

    def __repr__(self) -> str:
        state = "active" if self._active else "released"
        return f"Subscription({state})"


class Registry(Generic[T]):
    """Identity-keyed callback set owned by a single Atom."""

    __slots__ = ("_owner", "_callbacks")

    def __init__(self, owner: object) -> None:
        self._owner = owner
        # dict keys keep insertion order, so broadcast order is registration order.
        # Each callback maps to the Subscription that currently owns it.
        self._callbacks: dict[Callable[[T], None], Subscription] = {}

    def add(self, callback: Callable[[T], None]) -> Subscription:
        sub = Subscription(lambda: self._release(callback, sub))
        self._callbacks[callback] = sub
        return sub

    def _release(self, callback: Callable[[T], None], sub: Subscription) -> None:
        # a handle superseded by a later add() or by clear() removes nothing
        if self._callbacks.get(callback) is sub:
            del self._callbacks[callback]

    def broadcast(self, payload: T, superseded: Callable[[], bool] | None = None) -> bool:
        """Notify a snapshot of the callbacks.

        Stops early and returns False once superseded() is true.
        """
        for callback in tuple(self._callbacks):
            if superseded is not None and superseded():
                return False
            try:
                callback(payload)
            except Exception as exc:
                _report(exc, callback, self._owner)
        return True

    def clear(self) -> None:
        for sub in self._callbacks.values():
            sub._active = False
        self._callbacks.clear()

    def __contains__(self, callback: object) -> bool:
        return callback in self._callbacks

    def __len__(self) -> int:
        return len(self._callbacks)
