"""Unit tests for the channel registry and observer handle."""

import pytest

from deployhub.core.registry import ChannelRegistry, Observer


class TestChannelRegistry:
    """Tests for ChannelRegistry."""

    def test_register_creates_channel(self, registry: ChannelRegistry):
        observer = Observer()

        registry.register("d1", observer)

        assert "d1" in registry
        assert registry.observers("d1") == [observer]
        assert registry.is_registered("d1", observer)

    def test_register_is_idempotent(self, registry: ChannelRegistry):
        observer = Observer()

        registry.register("d1", observer)
        registry.register("d1", observer)

        assert registry.observers("d1") == [observer]

    def test_observers_keep_join_order(self, registry: ChannelRegistry):
        first, second, third = Observer(), Observer(), Observer()
        for observer in (first, second, third):
            registry.register("d1", observer)

        assert registry.observers("d1") == [first, second, third]

    def test_unregister_last_observer_removes_channel(self, registry: ChannelRegistry):
        first, second = Observer(), Observer()
        registry.register("d1", first)
        registry.register("d1", second)

        registry.unregister("d1", first)
        assert "d1" in registry

        registry.unregister("d1", second)
        assert "d1" not in registry
        assert len(registry) == 0
        assert registry.observers("d1") == []

    def test_unregister_unknown_is_noop(self, registry: ChannelRegistry):
        registry.unregister("nope", Observer())

        assert len(registry) == 0

    def test_channels_are_independent(self, registry: ChannelRegistry):
        observer = Observer()
        registry.register("d1", observer)
        registry.register("d2", observer)

        registry.unregister("d1", observer)

        assert registry.observers("d2") == [observer]

    def test_stats(self, registry: ChannelRegistry):
        registry.register("d1", Observer())
        registry.register("d1", Observer())
        registry.register("d2", Observer())

        assert registry.get_stats() == {"channels": 2, "observers": 3}


class TestObserver:
    """Tests for the queue-backed observer handle."""

    def test_push_and_drain(self):
        observer = Observer()

        observer.push({"n": 1})
        observer.push({"n": 2})

        assert observer.drain() == [{"n": 1}, {"n": 2}]
        assert observer.drain() == []

    def test_closed_observer_rejects_messages(self):
        observer = Observer()
        observer.close()

        assert observer.is_open is False
        assert observer.push({"n": 1}) is False
        assert observer.drain() == []

    @pytest.mark.asyncio
    async def test_messages_stop_after_close(self):
        observer = Observer()
        observer.push({"n": 1})
        observer.push({"n": 2})
        observer.close()

        received = [message async for message in observer.messages()]

        assert received == [{"n": 1}, {"n": 2}]

    def test_unread_backlog_closes_observer(self):
        observer = Observer(max_pending=3)

        accepted = [observer.push({"n": n}) for n in range(5)]

        assert accepted == [True, True, True, False, False]
        assert observer.overflowed is True
        assert observer.is_open is False

    @pytest.mark.asyncio
    async def test_overflowed_observer_ends_its_stream(self):
        observer = Observer(max_pending=2)
        for n in range(3):
            observer.push({"n": n})

        received = [message async for message in observer.messages()]

        assert received == [{"n": 0}, {"n": 1}]

    def test_reading_keeps_observer_open(self):
        observer = Observer(max_pending=2)

        for n in range(10):
            assert observer.push({"n": n}) is True
            observer.drain()

        assert observer.overflowed is False
        assert observer.is_open is True

    @pytest.mark.asyncio
    async def test_get_returns_none_when_closed(self):
        observer = Observer()
        observer.close()

        assert await observer.get(timeout=1) is None
