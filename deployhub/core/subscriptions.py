"""Observer subscription protocol.

Observers send ``{"type": "subscribe", "deploymentId": ...}`` and receive
``{"type": "log", "log": {...}}`` messages: first the recorded history for
that deployment, oldest first, then every entry published afterwards.
"""

import json
from typing import Any

from pydantic import ValidationError

from deployhub.core.broadcaster import EventBroadcaster
from deployhub.core.exceptions import ProtocolError
from deployhub.core.registry import Observer
from deployhub.models.logs import SubscribeMessage
from deployhub.utils.logging import get_logger


def parse_message(raw: str | bytes | dict[str, Any]) -> SubscribeMessage:
    """Parse a client message, raising ProtocolError if it is malformed."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ProtocolError(f"Message is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise ProtocolError("Message must be a JSON object")

    try:
        return SubscribeMessage.model_validate(raw)
    except ValidationError as e:
        raise ProtocolError(
            "Unsupported or malformed message",
            {"type": raw.get("type"), "errors": e.errors(include_url=False)},
        ) from e


class SubscriptionService:
    """Handles observer messages and keeps registrations in step with channels."""

    def __init__(self, broadcaster: EventBroadcaster):
        self.broadcaster = broadcaster
        self.logger = get_logger("subscriptions")

    async def handle_message(
        self, observer: Observer, raw: str | bytes | dict[str, Any]
    ) -> bool:
        """Act on one client message. Malformed messages are logged and ignored.

        Returns True if the message caused a subscription.
        """
        try:
            message = parse_message(raw)
        except ProtocolError as e:
            self.logger.warning(
                "subscriptions.protocol_error",
                observer=observer.id,
                error=e.message,
                details=e.details,
            )
            return False

        await self.subscribe(observer, message.deployment_id)
        return True

    async def subscribe(self, observer: Observer, deployment_id: str) -> int:
        """Subscribe ``observer`` to ``deployment_id``.

        An observer watches one deployment at a time; subscribing elsewhere
        drops the previous registration first. Repeating the current
        subscription is a no-op so the backfill is never replayed twice.
        Returns the number of backfilled entries.
        """
        if observer.deployment_id == deployment_id:
            self.logger.info(
                "subscriptions.already_subscribed",
                observer=observer.id,
                deployment_id=deployment_id,
            )
            return 0

        if observer.deployment_id is not None:
            self.broadcaster.detach(observer.deployment_id, observer)

        observer.deployment_id = deployment_id
        return await self.broadcaster.attach(deployment_id, observer)

    def release(self, observer: Observer) -> None:
        """Channel closed: close the observer and drop its registration."""
        observer.close()
        if observer.deployment_id is not None:
            self.broadcaster.detach(observer.deployment_id, observer)
        self.logger.info(
            "subscriptions.released",
            observer=observer.id,
            deployment_id=observer.deployment_id,
        )
