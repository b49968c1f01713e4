"""Textual integration for precoil. Opt-in — requires textual.

AtomView is a Textual widget whose render_atoms() reads atoms through
bind_state()/bind_reducer(). The bindings subscribe when the widget mounts,
release when it unmounts, and every atom update refreshes the widget.

    count = atom(0)

    class Counter(AtomView):
        def render_atoms(self):
            value, _ = count.bind_state()
            return f"count={value}"
"""

import threading

from textual.widget import Widget

from precoil.binding import Scope


class WidgetHost(Scope):
    """Host whose slots live with a Textual widget.

    An overwritten slot asks the widget to refresh instead of re-rendering
    inline; Textual then calls render() on its own schedule. Overwrites from
    other threads go through app.call_from_thread.
    """

    def __init__(self, widget, render) -> None:
        super().__init__(render)
        self._widget = widget
        self._thread_id = threading.get_ident()

    def render(self):
        """Render for the widget. Before mount, the last output is reused."""
        if self.mounted:
            self._run()
        return self.output

    def _invalidate(self) -> None:
        if threading.get_ident() != self._thread_id:
            self._widget.app.call_from_thread(self._widget.refresh)
        else:
            self._widget.refresh()


class AtomView(Widget):
    """Widget rendered from atoms. Subclasses implement render_atoms()."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._atom_host = WidgetHost(self, self.render_atoms)

    def render_atoms(self):
        raise NotImplementedError

    def render(self):
        output = self._atom_host.render()
        return "" if output is None else output

    def on_mount(self) -> None:
        self._atom_host.mount()

    def on_unmount(self) -> None:
        self._atom_host.unmount()
