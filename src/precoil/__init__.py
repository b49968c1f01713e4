"""precoil: tiny shared-state atoms with value and reducer bindings."""

from importlib.metadata import version as _version

__version__ = _version("precoil")

from precoil._registry import Subscription, set_error_handler
from precoil.atom import Atom, atom
from precoil.reducer import ReducerAdapter
from precoil.binding import Host, Scope, use_state, use_reducer
# textual NOT auto-imported — opt-in only

__all__ = [
    "Atom",
    "atom",
    "Subscription",
    "set_error_handler",
    "ReducerAdapter",
    "Host",
    "Scope",
    "use_state",
    "use_reducer",
]
