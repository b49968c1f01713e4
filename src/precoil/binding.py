"""View bindings — scoped subscriptions for re-rendering hosts.

A host (a UI component runtime, or the Scope below) supplies two things:

- use_slot(initial) -> (value, overwrite): local memory that survives
  re-renders; overwriting it re-renders the host.
- on_mount(setup): run setup() once after the first render; the teardown it
  returns runs exactly once when the host goes away.

use_state() and use_reducer() turn an Atom subscription into such a slot.
While a Scope renders it is published in `current_scope`, so bindings called
from the render function find their host without passing it around.
"""

from __future__ import annotations

import contextvars
import logging
from typing import TYPE_CHECKING, Any, Callable, Generic, Protocol, TypeVar

from precoil.reducer import Reducer, ReducerAdapter

if TYPE_CHECKING:
    from precoil.atom import Atom

logger = logging.getLogger("precoil.binding")

T = TypeVar("T")
R = TypeVar("R")

Teardown = Callable[[], None]


class Host(Protocol):
    def use_slot(self, initial: T, *, lazy: bool = False) -> tuple[T, Callable[[T], None]]: ...

    def on_mount(self, setup: Callable[[], Teardown | None]) -> None: ...


# The host currently rendering, if any.
current_scope: contextvars.ContextVar[Host | None] = contextvars.ContextVar(
    "current_scope", default=None
)


def _resolve(host: Host | None) -> Host:
    if host is None:
        host = current_scope.get()
    if host is None:
        raise RuntimeError("atom bindings need a host: call them while a Scope renders, or pass host=")
    return host


def use_state(atom: Atom[T], host: Host | None = None) -> tuple[T, Callable]:
    """Bind the value path: returns (value, atom.set_value)."""
    host = _resolve(host)
    value, overwrite = host.use_slot(atom.get_value, lazy=True)
    host.on_mount(lambda: atom.subscribe_value(overwrite))
    return value, atom.set_value


def use_reducer(
    atom: Atom[T], reducer: Reducer[T], host: Host | None = None
) -> tuple[T, Callable[[Any], None]]:
    """Bind the dispatch path: returns (state, dispatch).

    The site keeps its own state, derived by `reducer` from dispatched
    actions and reset directly when the value is set from elsewhere.
    """
    host = _resolve(host)
    adapter, _ = host.use_slot(lambda: ReducerAdapter(atom, reducer), lazy=True)
    adapter.reducer = reducer
    state, overwrite = host.use_slot(adapter.state)
    host.on_mount(lambda: atom.subscribe_dispatch(lambda action: overwrite(adapter.absorb(action))))
    return state, adapter.dispatch


class Scope(Generic[R]):
    """A minimal re-rendering host.

    Slots are addressed by call order within render, like hook-based
    component runtimes. Overwriting a slot re-renders synchronously.

    Usage:
        count = atom(0)

        def counter():
            value, set_value = count.bind_state()
            return value, set_value

        with Scope(counter) as view:
            view.output[1](lambda v: v + 1)
            view.output[0]  # 1
        # unmounted: the subscription is gone
    """

    def __init__(self, render: Callable[[], R]) -> None:
        self._render = render
        self._slots: list[Any] = []
        self._cursor = 0
        self._setups: list[Callable[[], Teardown | None]] = []
        self._teardowns: list[Teardown] = []
        self._mounted = False
        self._closed = False
        self.output: R | None = None
        self.renders = 0

    @property
    def mounted(self) -> bool:
        return self._mounted and not self._closed

    # --- Host protocol ---

    def use_slot(self, initial: T, *, lazy: bool = False) -> tuple[T, Callable[[T], None]]:
        """Slot for this call position. With lazy=True, `initial` is a
        zero-argument factory called only when the slot is first created."""
        index = self._cursor
        self._cursor += 1
        if index == len(self._slots):
            self._slots.append(initial() if lazy else initial)

        def overwrite(value: T) -> None:
            self._slots[index] = value
            if self.mounted:
                self._invalidate()

        return self._slots[index], overwrite

    def on_mount(self, setup: Callable[[], Teardown | None]) -> None:
        if not self._mounted:
            self._setups.append(setup)

    # --- Lifecycle ---

    def mount(self) -> Scope[R]:
        """First render, then run mount setups.

        A Scope mounts once: raises if already mounted or unmounted.
        """
        if self._closed:
            raise RuntimeError("Scope was unmounted and cannot be mounted")
        if self._mounted:
            raise RuntimeError("Scope is already mounted")
        self._run()
        self._mounted = True
        setups, self._setups = self._setups, []
        try:
            for setup in setups:
                teardown = setup()
                if teardown is not None:
                    self._teardowns.append(teardown)
        except BaseException:
            self.unmount()
            raise
        return self

    def unmount(self) -> None:
        """Run every teardown once, most recent first. Idempotent."""
        if self._closed:
            return
        self._closed = True
        logger.debug("Unmounting %r (%d teardowns)", self, len(self._teardowns))
        while self._teardowns:
            teardown = self._teardowns.pop()
            try:
                teardown()
            except Exception:
                logger.exception("Teardown %r of %r raised", teardown, self)

    def _invalidate(self) -> None:
        """A slot was overwritten. Re-render synchronously."""
        self._run()

    def _run(self) -> None:
        self._cursor = 0
        token = current_scope.set(self)
        try:
            self.output = self._render()
        finally:
            current_scope.reset(token)
        self.renders += 1

    def __enter__(self) -> Scope[R]:
        return self.mount()

    def __exit__(self, *exc_info) -> None:
        self.unmount()

    def __repr__(self) -> str:
        name = getattr(self._render, "__name__", repr(self._render))
        return f"Scope({name}, renders={self.renders})"
