"""Reducer reconciliation — keeps reducer-bound sites in step with set_value().

A reducer-bound site holds its own copy of the atom's state and re-derives it
from every dispatched action. When the value changes through set_value()
instead, the atom sends the site a SyncAction carrying the new value. The
adapter absorbs it by replacing the local state directly, so the user reducer
only ever sees actions the user dispatched.

Actions form a closed sum: a SyncAction, or anything else (a user action).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar

if TYPE_CHECKING:
    from precoil.atom import Atom

T = TypeVar("T")

Reducer = Callable[[T, Any], T]


class SyncAction(Generic[T]):
    """Reconciliation action: "the committed value is now `value`"."""

    __slots__ = ("value",)

    def __init__(self, value: T) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"SyncAction({self.value!r})"


class ReducerAdapter(Generic[T]):
    """Wraps a user reducer for one binding site.

    `reducer` may be swapped between renders; the local state is kept.
    """

    __slots__ = ("_atom", "_state", "reducer")

    def __init__(self, atom: Atom[T], reducer: Reducer[T]) -> None:
        self._atom = atom
        self._state = atom.get_value()
        self.reducer = reducer

    @property
    def state(self) -> T:
        return self._state

    def reduce(self, state: T, action: object) -> T:
        if isinstance(action, SyncAction):
            return action.value
        return self.reducer(state, action)

    def absorb(self, action: object) -> T:
        """Apply an incoming action to the local state and return the result."""
        self._state = self.reduce(self._state, action)
        return self._state

    def dispatch(self, action: object) -> None:
        """Dispatch a user action through the atom using this site's reducer."""
        self._atom.dispatch(action, self.reducer)

    def __repr__(self) -> str:
        name = getattr(self.reducer, "__name__", repr(self.reducer))
        return f"ReducerAdapter({name}, state={self._state!r})"
