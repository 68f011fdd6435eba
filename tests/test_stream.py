"""Tests for EventStream and Store.stream()."""

import asyncio

from turnkey import EventStream, Store


class TestEmitSubscribe:
    """Core emit/subscribe behavior."""

    def test_subscribe_receives_emitted_values(self):
        stream = EventStream()
        received = []
        stream.subscribe(received.append)
        stream.emit(1)
        stream.emit(2)
        assert received == [1, 2]

    def test_unsubscribe(self):
        stream = EventStream()
        received = []
        unsub = stream.subscribe(received.append)
        stream.emit(1)
        unsub()
        stream.emit(2)
        assert received == [1]

    def test_unsubscribe_idempotent(self):
        stream = EventStream()
        unsub = stream.subscribe(lambda v: None)
        unsub()
        unsub()  # should not raise


class TestOperators:
    def test_chained_maps(self):
        stream = EventStream()
        result = stream.map(lambda v: v + 1).map(lambda v: v * 10)
        received = []
        result.subscribe(received.append)
        stream.emit(2)
        assert received == [30]

    def test_filter_then_map(self):
        stream = EventStream()
        result = stream.filter(lambda v: v > 0).map(lambda v: v * 10)
        received = []
        result.subscribe(received.append)
        stream.emit(-1)
        stream.emit(3)
        assert received == [30]


class TestDebounce:
    async def test_coalesces_rapid_events(self):
        stream = EventStream()
        received = []
        stream.debounce(0.01).subscribe(received.append)

        # Rapid burst, only the last should fire
        stream.emit(1)
        stream.emit(2)
        stream.emit(3)

        await asyncio.sleep(0.03)
        assert received == [3]

    async def test_separate_bursts(self):
        stream = EventStream()
        received = []
        stream.debounce(0.01).subscribe(received.append)

        stream.emit("a")
        await asyncio.sleep(0.03)
        stream.emit("b")
        await asyncio.sleep(0.03)

        assert received == ["a", "b"]

    async def test_dispose_cancels_pending_timer(self):
        stream = EventStream()
        debounced = stream.debounce(0.01)
        received = []
        debounced.subscribe(received.append)

        stream.emit(1)
        debounced.dispose()
        await asyncio.sleep(0.03)
        assert received == []


class TestDispose:
    def test_emit_after_dispose_is_noop(self):
        stream = EventStream()
        received = []
        stream.subscribe(received.append)
        stream.dispose()
        stream.emit(1)
        assert received == []

    def test_dispose_propagates_to_children(self):
        parent = EventStream()
        child = parent.map(lambda v: v)
        grandchild = child.filter(lambda v: True)

        parent.dispose()

        assert child.disposed
        assert grandchild.disposed

    def test_child_dispose_detaches_from_parent(self):
        parent = EventStream()
        child = parent.map(lambda v: v)
        received_parent = []
        parent.subscribe(received_parent.append)

        child.dispose()

        parent.emit(1)
        assert received_parent == [1]
        assert not parent.disposed
        assert parent._subscribers == [received_parent.append]

    def test_on_dispose_runs_once(self):
        stream = EventStream()
        calls = []
        stream.on_dispose(lambda: calls.append("done"))

        stream.dispose()
        stream.dispose()

        assert calls == ["done"]


class TestStoreStream:
    async def test_streams_settled_changes(self):
        s = Store({"x": 0})
        received = []
        s.stream("x").map(lambda v: v * 2).subscribe(received.append)

        s.set("x", 1)
        s.set("x", 2)
        await s.flush()
        s.set("x", 2)
        await s.flush()

        assert received == [4]

    async def test_dispose_unsubscribes_from_store(self):
        s = Store({"x": 0})
        received = []
        stream = s.stream("x")
        stream.subscribe(received.append)

        await s.set("x", 1)
        stream.dispose()
        await s.set("x", 2)

        assert received == [1]
        assert s._listeners.count("x") == 0

    async def test_debounced_store_stream(self):
        s = Store({"x": 0})
        received = []
        s.stream("x").debounce(0.01).subscribe(received.append)

        await s.set("x", 1)
        await s.set("x", 2)
        await asyncio.sleep(0.03)

        assert received == [2]
