"""Unit tests for the observer subscription protocol."""

import json

import pytest

from deployhub.core.broadcaster import EventBroadcaster
from deployhub.core.exceptions import ProtocolError
from deployhub.core.registry import ChannelRegistry, Observer
from deployhub.core.subscriptions import SubscriptionService, parse_message
from deployhub.models.logs import LogEntry


class TestParseMessage:
    """Tests for parse_message."""

    def test_parse_camel_case(self):
        message = parse_message('{"type": "subscribe", "deploymentId": "d1"}')

        assert message.deployment_id == "d1"

    def test_parse_dict(self):
        message = parse_message({"type": "subscribe", "deployment_id": "d1"})

        assert message.deployment_id == "d1"

    def test_parse_bytes(self):
        message = parse_message(b'{"type": "subscribe", "deploymentId": "d1"}')

        assert message.deployment_id == "d1"

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[1, 2, 3]",
            '{"type": "unsubscribe", "deploymentId": "d1"}',
            '{"type": "subscribe"}',
            '{"type": "subscribe", "deploymentId": ""}',
            "",
        ],
    )
    def test_malformed_messages(self, raw: str):
        with pytest.raises(ProtocolError):
            parse_message(raw)


class TestSubscriptionService:
    """Tests for SubscriptionService."""

    @pytest.mark.asyncio
    async def test_handle_subscribe_backfills(
        self, subscriptions: SubscriptionService, broadcaster: EventBroadcaster
    ):
        await broadcaster.publish("d1", LogEntry.info("earlier"))
        observer = Observer()

        handled = await subscriptions.handle_message(
            observer, json.dumps({"type": "subscribe", "deploymentId": "d1"})
        )

        assert handled is True
        assert observer.deployment_id == "d1"
        assert [m["log"]["message"] for m in observer.drain()] == ["earlier"]

    @pytest.mark.asyncio
    async def test_malformed_message_is_ignored(
        self, subscriptions: SubscriptionService, registry: ChannelRegistry
    ):
        observer = Observer()

        handled = await subscriptions.handle_message(observer, "{oops")

        assert handled is False
        assert observer.deployment_id is None
        assert observer.is_open
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_repeat_subscribe_does_not_replay(
        self, subscriptions: SubscriptionService, broadcaster: EventBroadcaster
    ):
        await broadcaster.publish("d1", LogEntry.info("earlier"))
        observer = Observer()

        await subscriptions.subscribe(observer, "d1")
        replayed = await subscriptions.subscribe(observer, "d1")

        assert replayed == 0
        assert len(observer.drain()) == 1

    @pytest.mark.asyncio
    async def test_resubscribe_moves_registration(
        self,
        subscriptions: SubscriptionService,
        broadcaster: EventBroadcaster,
        registry: ChannelRegistry,
    ):
        observer = Observer()
        await subscriptions.subscribe(observer, "d1")

        await subscriptions.subscribe(observer, "d2")
        await broadcaster.publish("d1", LogEntry.info("old deployment"))
        await broadcaster.publish("d2", LogEntry.info("new deployment"))

        assert "d1" not in registry
        assert registry.is_registered("d2", observer)
        assert [m["log"]["message"] for m in observer.drain()] == ["new deployment"]

    @pytest.mark.asyncio
    async def test_release_unregisters(
        self, subscriptions: SubscriptionService, registry: ChannelRegistry
    ):
        observer = Observer()
        await subscriptions.subscribe(observer, "d1")

        subscriptions.release(observer)

        assert observer.is_open is False
        assert "d1" not in registry

    @pytest.mark.asyncio
    async def test_release_without_subscription(
        self, subscriptions: SubscriptionService, registry: ChannelRegistry
    ):
        observer = Observer()

        subscriptions.release(observer)

        assert observer.is_open is False
        assert len(registry) == 0
