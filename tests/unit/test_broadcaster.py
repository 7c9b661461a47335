"""Unit tests for the event broadcaster."""

import asyncio

import pytest

from deployhub.core.broadcaster import EventBroadcaster
from deployhub.core.registry import ChannelRegistry, Observer
from deployhub.core.storage import MemoryStorage
from deployhub.models.logs import LogEntry


class SlowStorage(MemoryStorage):
    """Storage whose writes yield to the event loop before landing."""

    async def add_deployment_log(self, deployment_id: str, entry: LogEntry) -> None:
        for _ in range(3):
            await asyncio.sleep(0)
        await super().add_deployment_log(deployment_id, entry)


class BrokenStorage(MemoryStorage):
    async def add_deployment_log(self, deployment_id: str, entry: LogEntry) -> None:
        raise RuntimeError("disk full")


def messages(observer: Observer) -> list[str]:
    return [m["log"]["message"] for m in observer.drain()]


class TestPublish:
    """Tests for EventBroadcaster.publish."""

    @pytest.mark.asyncio
    async def test_publish_records_and_pushes(
        self, broadcaster: EventBroadcaster, registry: ChannelRegistry, storage: MemoryStorage
    ):
        first, second = Observer(), Observer()
        registry.register("d1", first)
        registry.register("d1", second)

        delivered = await broadcaster.publish("d1", LogEntry.info("hello"))

        assert delivered == 2
        assert [log.message for log in await storage.get_deployment_logs("d1")] == ["hello"]
        for observer in (first, second):
            pushed = observer.drain()
            assert pushed == [
                {"type": "log", "log": {"timestamp": pushed[0]["log"]["timestamp"], "level": "info", "message": "hello"}}
            ]

    @pytest.mark.asyncio
    async def test_publish_only_reaches_its_deployment(
        self, broadcaster: EventBroadcaster, registry: ChannelRegistry
    ):
        watcher, other = Observer(), Observer()
        registry.register("d1", watcher)
        registry.register("d2", other)

        await broadcaster.publish("d1", LogEntry.info("for d1"))

        assert messages(watcher) == ["for d1"]
        assert messages(other) == []

    @pytest.mark.asyncio
    async def test_closed_observer_is_skipped_not_removed(
        self, broadcaster: EventBroadcaster, registry: ChannelRegistry
    ):
        open_observer, closed_observer = Observer(), Observer()
        registry.register("d1", open_observer)
        registry.register("d1", closed_observer)
        closed_observer.close()

        delivered = await broadcaster.publish("d1", LogEntry.info("hello"))

        assert delivered == 1
        assert registry.is_registered("d1", closed_observer)
        assert messages(open_observer) == ["hello"]

    @pytest.mark.asyncio
    async def test_publish_without_observers(
        self, broadcaster: EventBroadcaster, registry: ChannelRegistry, storage: MemoryStorage
    ):
        observer = Observer()
        registry.register("d1", observer)
        registry.unregister("d1", observer)

        delivered = await broadcaster.publish("d1", LogEntry.info("nobody home"))

        assert delivered == 0
        assert "d1" not in registry
        assert len(await storage.get_deployment_logs("d1")) == 1

    @pytest.mark.asyncio
    async def test_history_failure_fails_publish(self, registry: ChannelRegistry):
        broadcaster = EventBroadcaster(BrokenStorage(), registry)
        observer = Observer()
        registry.register("d1", observer)

        with pytest.raises(RuntimeError, match="disk full"):
            await broadcaster.publish("d1", LogEntry.info("lost"))

        assert observer.drain() == []


class TestAttach:
    """Tests for gap-free backfill."""

    @pytest.mark.asyncio
    async def test_attach_backfills_then_streams(
        self, broadcaster: EventBroadcaster, registry: ChannelRegistry
    ):
        await broadcaster.publish("d1", LogEntry.info("one"))
        await broadcaster.publish("d1", LogEntry.info("two"))
        observer = Observer()

        backfilled = await broadcaster.attach("d1", observer)
        await broadcaster.publish("d1", LogEntry.info("three"))

        assert backfilled == 2
        assert registry.is_registered("d1", observer)
        assert messages(observer) == ["one", "two", "three"]

    @pytest.mark.asyncio
    async def test_attach_during_publishing_has_no_gap_or_duplicate(self):
        storage = SlowStorage()
        broadcaster = EventBroadcaster(storage, ChannelRegistry())
        early = Observer()
        await broadcaster.attach("d1", early)

        async def publish_all():
            for i in range(20):
                await broadcaster.publish("d1", LogEntry.info(f"line {i}"))

        publisher = asyncio.create_task(publish_all())
        late_observers = []
        for _ in range(5):
            for _ in range(7):
                await asyncio.sleep(0)
            late = Observer()
            await broadcaster.attach("d1", late)
            late_observers.append(late)
        await publisher

        expected = [f"line {i}" for i in range(20)]
        history = [log.message for log in await storage.get_deployment_logs("d1")]
        assert history == expected
        assert messages(early) == expected
        for late in late_observers:
            assert messages(late) == expected

    @pytest.mark.asyncio
    async def test_clear_history(self, broadcaster: EventBroadcaster, storage: MemoryStorage):
        await broadcaster.publish("d1", LogEntry.info("one"))

        await broadcaster.clear_history("d1")

        assert await storage.get_deployment_logs("d1") == []
        assert await broadcaster.attach("d1", Observer()) == 0
