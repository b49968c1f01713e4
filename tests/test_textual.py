"""Tests for precoil.textual — atoms rendered by Textual widgets."""

import asyncio
import threading

from textual.app import App

from precoil import atom
from precoil.textual import AtomView, WidgetHost


class _FakeWidget:
    """Stands in for a widget: counts refreshes, owns a fake app."""

    def __init__(self):
        self.refreshes = 0
        self.app = self
        self.marshaled = []

    def refresh(self):
        self.refreshes += 1

    def call_from_thread(self, fn, *args):
        self.marshaled.append(fn)
        fn(*args)


class TestWidgetHost:
    def test_update_refreshes_instead_of_rendering(self):
        count = atom(0)
        widget = _FakeWidget()
        host = WidgetHost(widget, lambda: count.bind_state()[0])
        host.mount()
        assert host.renders == 1

        count.set_value(5)
        assert widget.refreshes == 1
        assert host.renders == 1  # Textual decides when to render
        assert host.render() == 5
        assert host.renders == 2

    def test_render_before_mount_registers_nothing(self):
        count = atom(0)
        host = WidgetHost(_FakeWidget(), lambda: count.bind_state()[0])
        assert host.render() is None
        host.mount()
        assert count.subscriber_count == 1

    def test_update_from_other_thread_is_marshaled(self):
        count = atom(0)
        widget = _FakeWidget()
        host = WidgetHost(widget, lambda: count.bind_state()[0])
        host.mount()

        t = threading.Thread(target=count.set_value, args=(1,))
        t.start()
        t.join()

        assert widget.marshaled == [widget.refresh]
        assert widget.refreshes == 1

    def test_unmount_releases(self):
        count = atom(0)
        widget = _FakeWidget()
        host = WidgetHost(widget, lambda: count.bind_state()[0])
        host.mount()
        host.unmount()
        count.set_value(1)
        assert count.subscriber_count == 0
        assert widget.refreshes == 0


def counter_reducer(state, action):
    if action == "INCREMENT":
        return state + 1
    return state


class TestAtomView:
    def test_widgets_follow_atom_and_release_on_remove(self):
        count = atom(0)

        class Mirror(AtomView):
            def render_atoms(self):
                value, _ = count.bind_state()
                return f"count={value}"

        class Counter(AtomView):
            def render_atoms(self):
                state, self.send_action = count.bind_reducer(counter_reducer)
                return f"clicks={state}"

        class CounterApp(App):
            def compose(self):
                yield Mirror()
                yield Counter()

        async def scenario():
            app = CounterApp()
            async with app.run_test() as pilot:
                mirror = app.query_one(Mirror)
                counter = app.query_one(Counter)
                assert count.subscriber_count == 2

                counter.send_action("INCREMENT")
                count.set_value(lambda v: v + 10)
                await pilot.pause()
                assert mirror.render() == "count=11"
                assert counter.render() == "clicks=11"

                await mirror.remove()
                await counter.remove()
                assert count.subscriber_count == 0

        asyncio.run(scenario())
