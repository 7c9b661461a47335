"""Event broadcaster: records deployment log entries and fans them out."""

import asyncio
import weakref

from deployhub.core.registry import ChannelRegistry, Observer
from deployhub.core.storage import Storage
from deployhub.models.logs import LogEntry, LogMessage
from deployhub.utils.logging import get_logger


class EventBroadcaster:
    """Appends entries to per-deployment history and pushes them to observers.

    History is authoritative: an entry that cannot be stored is not pushed
    and the publish call fails. Publishing and attaching a new observer for
    the same deployment are serialized by a per-deployment lock, so an
    observer sees the backfill followed by live entries with no gap and no
    duplicate. Different deployments never contend.
    """

    def __init__(self, storage: Storage, registry: ChannelRegistry):
        self.storage = storage
        self.registry = registry
        self.logger = get_logger("broadcaster")
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, deployment_id: str) -> asyncio.Lock:
        lock = self._locks.get(deployment_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[deployment_id] = lock
        return lock

    async def publish(self, deployment_id: str, entry: LogEntry) -> int:
        """Record ``entry`` and push it to every open observer.

        Returns the number of observers the entry was pushed to. Registered
        observers whose channel is not open are skipped but stay registered;
        removing them is the channel-close path's job.
        """
        message = LogMessage(log=entry).to_wire()
        lock = self._lock_for(deployment_id)
        async with lock:
            await self.storage.add_deployment_log(deployment_id, entry)

            delivered = 0
            for observer in self.registry.observers(deployment_id):
                if observer.is_open and observer.push(message):
                    delivered += 1

        self.logger.debug(
            "broadcaster.published",
            deployment_id=deployment_id,
            level=entry.level.value,
            delivered=delivered,
        )
        return delivered

    async def attach(self, deployment_id: str, observer: Observer) -> int:
        """Register ``observer`` and queue the recorded history for it.

        Returns the number of backfilled entries.
        """
        lock = self._lock_for(deployment_id)
        async with lock:
            history = await self.storage.get_deployment_logs(deployment_id)
            self.registry.register(deployment_id, observer)
            for entry in history:
                observer.push(LogMessage(log=entry).to_wire())

        self.logger.info(
            "broadcaster.attached",
            deployment_id=deployment_id,
            observer=observer.id,
            backfilled=len(history),
        )
        return len(history)

    def detach(self, deployment_id: str, observer: Observer) -> None:
        self.registry.unregister(deployment_id, observer)

    async def clear_history(self, deployment_id: str) -> None:
        """Drop the recorded history for a deployment."""
        lock = self._lock_for(deployment_id)
        async with lock:
            await self.storage.clear_deployment_logs(deployment_id)
        self.logger.info("broadcaster.history_cleared", deployment_id=deployment_id)
