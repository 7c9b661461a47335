"""Log channel registry: which observers are watching which deployment."""

import asyncio
from typing import Any, AsyncIterator
from uuid import uuid4

from deployhub.utils.logging import get_logger

logger = get_logger(__name__)


class Observer:
    """An open channel to one client plus the deployment it is subscribed to.

    Messages are queued rather than written directly so that publishing never
    waits on a slow client. The transport (WebSocket, SSE) drains the queue
    with :meth:`messages`.
    """

    def __init__(self, label: str = "observer", max_pending: int = 1000):
        self.id = uuid4().hex
        self.label = label
        self.deployment_id: str | None = None
        # One extra slot so the close sentinel always fits.
        self._queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue(
            maxsize=max_pending + 1
        )
        self._max_pending = max_pending
        self._closed = False
        self.overflowed = False

    def __repr__(self) -> str:
        return f"<Observer {self.label}:{self.id[:8]} deployment={self.deployment_id}>"

    @property
    def is_open(self) -> bool:
        return not self._closed

    def push(self, message: dict[str, Any]) -> bool:
        """Queue a message. Returns False if the channel is closed.

        A client that leaves ``max_pending`` messages unread is closed
        instead of growing the queue further.
        """
        if self._closed:
            return False
        if self._queue.qsize() >= self._max_pending:
            logger.warning(
                "observer.overflow",
                observer=self.id,
                deployment_id=self.deployment_id,
                max_pending=self._max_pending,
            )
            self.overflowed = True
            self.close()
            return False
        self._queue.put_nowait(message)
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    def drain(self) -> list[dict[str, Any]]:
        """Return every queued message without waiting."""
        drained = []
        while not self._queue.empty():
            message = self._queue.get_nowait()
            if message is not None:
                drained.append(message)
        return drained

    async def get(self, timeout: float | None = None) -> dict[str, Any] | None:
        """Next message, or None once the channel is closed."""
        if timeout is None:
            return await self._queue.get()
        return await asyncio.wait_for(self._queue.get(), timeout=timeout)

    async def messages(self) -> AsyncIterator[dict[str, Any]]:
        """Yield queued messages until the channel closes."""
        while True:
            message = await self._queue.get()
            if message is None:
                return
            yield message


class ChannelRegistry:
    """Maps a deployment id to the observers currently subscribed to it.

    Pure in-memory bookkeeping; empty entries are removed as soon as the last
    observer leaves.
    """

    def __init__(self) -> None:
        self._channels: dict[str, dict[str, Observer]] = {}

    def register(self, deployment_id: str, observer: Observer) -> None:
        self._channels.setdefault(deployment_id, {})[observer.id] = observer
        logger.info(
            "registry.registered",
            deployment_id=deployment_id,
            observer=observer.id,
            observers=len(self._channels[deployment_id]),
        )

    def unregister(self, deployment_id: str, observer: Observer) -> None:
        members = self._channels.get(deployment_id)
        if members is None:
            return
        members.pop(observer.id, None)
        if not members:
            del self._channels[deployment_id]
        logger.info(
            "registry.unregistered",
            deployment_id=deployment_id,
            observer=observer.id,
            observers=len(members),
        )

    def observers(self, deployment_id: str) -> list[Observer]:
        """Snapshot of the observers for a deployment, in join order."""
        return list(self._channels.get(deployment_id, {}).values())

    def is_registered(self, deployment_id: str, observer: Observer) -> bool:
        return observer.id in self._channels.get(deployment_id, {})

    def __contains__(self, deployment_id: str) -> bool:
        return deployment_id in self._channels

    def __len__(self) -> int:
        return len(self._channels)

    def get_stats(self) -> dict[str, int]:
        return {
            "channels": len(self._channels),
            "observers": sum(len(m) for m in self._channels.values()),
        }
