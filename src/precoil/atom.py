"""Atoms — independent units of shared state with two update pathways.

An Atom holds one committed value and three registries:

- value subscribers receive the raw next value (bind_state sites),
- dispatch subscribers receive actions and re-derive their state through
  their own reducer (bind_reducer sites),
- observers are passive listeners notified after every commit.

set_value() and dispatch() notify the registries in a fixed order, so sites
bound through either pathway always agree on the value once an update returns.

Each Atom is its own identity: registries live on the instance, there is no
global table of atoms.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, TypeVar, overload

from precoil import binding
from precoil._registry import Registry, Subscription
from precoil.reducer import Reducer, SyncAction

logger = logging.getLogger("precoil.atom")

T = TypeVar("T")


class Atom(Generic[T]):
    """Shared mutable state observable through values, actions, or passively."""

    __slots__ = ("_value", "_name", "_commits", "_value_subs", "_dispatch_subs", "_observers")

    def __init__(self, value: T | None = None, *, name: str | None = None) -> None:
        self._value = value
        self._name = name
        # bumped on every commit; lets an in-flight update notice it was superseded
        self._commits = 0
        self._value_subs: Registry[T] = Registry(self)
        self._dispatch_subs: Registry[Any] = Registry(self)
        self._observers: Registry[T] = Registry(self)

    @property
    def name(self) -> str | None:
        return self._name

    def get_value(self) -> T:
        """The committed value. No side effects."""
        return self._value

    value = property(get_value)

    def set_value(self, next_value: T | Callable[[T], T]) -> None:
        """Replace the value and notify every subscriber.

        A callable is an updater applied to the committed value, so two
        back-to-back `set_value(lambda v: v + 1)` calls add 2. If the updater
        raises, the exception propagates and nothing is notified.

        Order: value subscribers, dispatch subscribers (with a SyncAction),
        commit, observers.
        """
        value = next_value(self._value) if callable(next_value) else next_value
        logger.debug("%r: set_value -> %r", self, value)
        self._publish(value, (self._value_subs, value), (self._dispatch_subs, SyncAction(value)))

    def dispatch(self, action: Any, reducer: Reducer[T]) -> None:
        """Apply a user action with the dispatching site's reducer.

        Dispatch subscribers get the action itself and run it through their
        own reducer; value subscribers get the reduced value. The reducer runs
        before any notification, so a failing reducer leaves everyone as-is.
        """
        if isinstance(action, SyncAction):
            raise TypeError("SyncAction is reserved for set_value() reconciliation")
        value = reducer(self._value, action)
        logger.debug("%r: dispatch %r -> %r", self, action, value)
        self._publish(value, (self._dispatch_subs, action), (self._value_subs, value))

    def _publish(self, value: T, *steps: tuple[Registry, Any]) -> None:
        """Run the pre-commit broadcasts, commit, then notify observers.

        A subscriber may update the atom re-entrantly. Once that nested update
        commits, this one is superseded: everyone has already been handed the
        newer value, so the rest of this broadcast and its commit are skipped.
        """
        start = self._commits

        def superseded() -> bool:
            return self._commits != start

        for registry, payload in steps:
            if not registry.broadcast(payload, superseded):
                break
        if superseded():
            logger.debug("%r: update to %r superseded by a nested update", self, value)
            return
        self._value = value
        self._commits += 1
        start = self._commits
        self._observers.broadcast(value, superseded)

    # --- Subscriptions ---

    def subscribe_value(self, callback: Callable[[T], None]) -> Subscription:
        return self._value_subs.add(callback)

    def subscribe_dispatch(self, callback: Callable[[Any], None]) -> Subscription:
        return self._dispatch_subs.add(callback)

    def subscribe_observer(self, callback: Callable[[T], None]) -> Subscription:
        """Passive listener, called with the value after every commit."""
        return self._observers.add(callback)

    subscribe = subscribe_observer

    @property
    def subscriber_count(self) -> int:
        """Live registrations across all three registries."""
        return len(self._value_subs) + len(self._dispatch_subs) + len(self._observers)

    # --- View bindings ---

    def bind_state(self, host: binding.Host | None = None) -> tuple[T, Callable]:
        """Value-path binding: (value, set_value). See binding.use_state."""
        return binding.use_state(self, host)

    def bind_reducer(
        self, reducer: Reducer[T], host: binding.Host | None = None
    ) -> tuple[T, Callable[[Any], None]]:
        """Reducer-path binding: (state, dispatch). See binding.use_reducer."""
        return binding.use_reducer(self, reducer, host)

    def destroy(self) -> None:
        """Drop every subscription. The value stays readable and writable."""
        if self.subscriber_count:
            logger.debug("%r: destroy, dropping %d subscriptions", self, self.subscriber_count)
        self._value_subs.clear()
        self._dispatch_subs.clear()
        self._observers.clear()

    def __repr__(self) -> str:
        if self._name is not None:
            return f"Atom({self._name}={self._value!r})"
        return f"Atom({self._value!r})"


@overload
def atom(*, name: str | None = None) -> Atom[Any]: ...
@overload
def atom(initial: T, *, name: str | None = None) -> Atom[T]: ...


def atom(initial=None, *, name=None):
    """Create an Atom.

    Usage:
        count_store = atom({"count": 0})

        unsubscribe = count_store.subscribe(
            lambda state: print(f"State has been changed to {state['count']}.")
        )
        count_store.set_value(lambda s: {"count": s["count"] + 1})
        # State has been changed to 1.
        unsubscribe()
    """
    return Atom(initial, name=name)
