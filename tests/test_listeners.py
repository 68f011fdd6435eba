"""Tests for the per-key listener registry."""

from turnkey._listeners import ListenerRegistry


class TestListenerRegistry:
    def test_notifies_in_registration_order(self):
        registry = ListenerRegistry()
        log = []
        registry.add("x", lambda v: log.append(("first", v)))
        registry.add("x", lambda v: log.append(("second", v)))
        registry.notify("x", 1)
        assert log == [("first", 1), ("second", 1)]

    def test_keys_are_independent(self):
        registry = ListenerRegistry()
        log = []
        registry.add("x", log.append)
        registry.notify("y", 1)
        assert log == []

    def test_duplicate_registrations_each_fire(self):
        registry = ListenerRegistry()
        log = []
        registry.add("x", log.append)
        registry.add("x", log.append)
        registry.notify("x", 1)
        assert log == [1, 1]
        assert registry.count("x") == 2

    def test_disposer_is_idempotent(self):
        registry = ListenerRegistry()
        log = []
        dispose = registry.add("x", log.append)
        registry.add("x", log.append)
        dispose()
        dispose()  # must not remove the second registration
        registry.notify("x", 1)
        assert log == [1]

    def test_remove_unknown_is_noop(self):
        registry = ListenerRegistry()
        registry.remove("x", print)
        registry.add("x", repr)
        registry.remove("x", print)
        assert registry.count("x") == 1

    def test_listener_can_unsubscribe_during_notify(self):
        registry = ListenerRegistry()
        log = []

        def once(value):
            log.append(("once", value))
            dispose()

        dispose = registry.add("x", once)
        registry.add("x", lambda v: log.append(("always", v)))
        registry.notify("x", 1)
        registry.notify("x", 2)
        assert log == [("once", 1), ("always", 1), ("always", 2)]

    def test_count_and_clear(self):
        registry = ListenerRegistry()
        registry.add("x", repr)
        registry.add("y", repr)
        registry.add(None, repr)
        assert registry.count() == 3
        assert registry.count(None) == 1
        registry.clear()
        assert registry.count() == 0
