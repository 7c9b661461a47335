"""Deployment driver.

Walks one deployment through its phases::

    pending -> building -> deploying -> success
           \\________________\\______-> failed

The sequencer below owns the state machine, the record updates and the
surrounding narration. A :class:`DeployStrategy` decides how "building" and
"deploying" actually complete (simulated delays or a real provider).
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable

import structlog

from deployhub.core.broadcaster import EventBroadcaster
from deployhub.core.exceptions import (
    DeployHubError,
    DeploymentNotFoundError,
    InvalidStateTransition,
)
from deployhub.core.storage import Storage
from deployhub.models.deployment import Deployment, DeploymentStatus
from deployhub.models.logs import LogEntry
from deployhub.models.project import Project, ProjectStatus
from deployhub.utils.logging import get_logger

SleepFunc = Callable[[float], Awaitable[None]]

ALLOWED_TRANSITIONS = {
    DeploymentStatus.PENDING: {
        DeploymentStatus.BUILDING,
        DeploymentStatus.FAILED,
    },
    DeploymentStatus.BUILDING: {
        DeploymentStatus.DEPLOYING,
        DeploymentStatus.FAILED,
    },
    DeploymentStatus.DEPLOYING: {
        DeploymentStatus.SUCCESS,
        DeploymentStatus.FAILED,
    },
}


def check_transition(current: DeploymentStatus, new: DeploymentStatus) -> None:
    """Raise InvalidStateTransition unless ``new`` is a legal next status."""
    if current == new and not current.is_terminal:
        return
    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidStateTransition(current.value, new.value)


@dataclass
class RunContext:
    """What a strategy needs while it narrates a phase."""

    project: Project
    deployment_id: str
    broadcaster: EventBroadcaster
    sleep: SleepFunc = asyncio.sleep
    delay_scale: float = 1.0

    async def emit(self, entry: LogEntry) -> None:
        await self.broadcaster.publish(self.deployment_id, entry)

    async def info(self, message: str) -> None:
        await self.emit(LogEntry.info(message))

    async def success(self, message: str) -> None:
        await self.emit(LogEntry.success(message))

    async def warning(self, message: str) -> None:
        await self.emit(LogEntry.warning(message))

    async def pause(self, seconds: float) -> None:
        """Narrative delay, scaled by ``delay_scale``."""
        await self.sleep(seconds * self.delay_scale)


class DeployStrategy(ABC):
    """How the building and deploying phases reach completion."""

    name: str = "base"

    # Success narration
    started_message = "Application started successfully"
    live_message = "Health checks passed"

    async def prepare(self, ctx: RunContext) -> None:
        """Extra pending-phase narration. Nothing by default."""

    @abstractmethod
    async def build(self, ctx: RunContext) -> None:
        """Return once the build has succeeded; raise to fail the deployment."""

    @abstractmethod
    async def deploy(self, ctx: RunContext) -> str:
        """Return the public URL once the application is live."""

    async def narrate_build(self, ctx: RunContext) -> None:
        """Fetch, install and compile narration, branching on project type."""
        await ctx.info("Fetching repository from GitHub...")
        await ctx.pause(1.2)
        await ctx.success("Repository cloned successfully")
        await ctx.pause(0.6)
        await ctx.info("Installing dependencies...")
        await ctx.pause(1.5)
        await ctx.success("Dependencies installed")
        await ctx.pause(0.8)

        if ctx.project.type.has_frontend:
            await ctx.info("Building frontend assets...")
            await ctx.pause(2.0)
            await ctx.info("Optimizing bundle size...")
            await ctx.pause(1.0)
            await ctx.success("Frontend build completed")
            await ctx.pause(0.6)

        if ctx.project.type.has_backend:
            await ctx.info("Compiling backend code...")
            await ctx.pause(1.5)
            await ctx.success("Backend compilation successful")
            await ctx.pause(0.6)


class DeploymentDriver:
    """Runs a single deployment to a terminal state.

    One driver instance per deployment. Any exception raised before success
    is converted into the failed state plus one error log entry; nothing is
    retried here.
    """

    def __init__(
        self,
        storage: Storage,
        broadcaster: EventBroadcaster,
        strategy: DeployStrategy,
        project: Project,
        deployment: Deployment,
        sleep: SleepFunc = asyncio.sleep,
        delay_scale: float = 1.0,
    ):
        self.storage = storage
        self.broadcaster = broadcaster
        self.strategy = strategy
        self.project = project
        self.deployment = deployment
        self.ctx = RunContext(
            project=project,
            deployment_id=deployment.id,
            broadcaster=broadcaster,
            sleep=sleep,
            delay_scale=delay_scale,
        )
        self.logger = get_logger("driver").bind(
            deployment_id=deployment.id,
            project_id=project.id,
            strategy=strategy.name,
        )

    async def run(self) -> Deployment:
        """Drive the deployment and return its final record."""
        structlog.contextvars.bind_contextvars(deployment_id=self.deployment.id)
        self.logger.info("driver.started", project=self.project.name)

        try:
            await self._enter(DeploymentStatus.PENDING)
            await self._update_project({"status": ProjectStatus.DEPLOYING})
            await self.ctx.info("Deployment initialized")
            await self.ctx.pause(1.0)
            await self.ctx.info(f"Preparing to deploy {self.project.name}...")
            await self.ctx.pause(0.8)
            await self.strategy.prepare(self.ctx)

            await self._enter(DeploymentStatus.BUILDING)
            await self.strategy.build(self.ctx)

            await self._enter(DeploymentStatus.DEPLOYING)
            url = await self.strategy.deploy(self.ctx)
        except Exception as e:
            return await self._fail(e)

        return await self._succeed(url)

    async def _enter(self, status: DeploymentStatus, **fields) -> Deployment:
        check_transition(self.deployment.status, status)
        updated = await self.storage.update_deployment(
            self.deployment.id, {"status": status, **fields}
        )
        if updated is None:
            raise DeploymentNotFoundError(self.deployment.id)
        self.deployment = updated
        self.logger.info("driver.phase.entered", phase=status.value)
        return updated

    async def _update_project(self, updates: dict) -> Project | None:
        updated = await self.storage.update_project(self.project.id, updates)
        if updated is None:
            self.logger.warning("driver.project_missing", fields=sorted(updates))
            return None
        self.project = updated
        return updated

    async def _succeed(self, url: str) -> Deployment:
        now = datetime.now(timezone.utc)
        await self._enter(DeploymentStatus.SUCCESS, completed_at=now)
        await self._update_project(
            {
                "status": ProjectStatus.DEPLOYED,
                "deployed_url": url,
                "last_deployed_at": now,
            }
        )

        await self.ctx.success(self.strategy.started_message)
        await self.ctx.pause(0.5)
        await self.ctx.success(f"Deployment complete! Available at {url}")
        await self.ctx.pause(0.5)
        await self.ctx.info(self.strategy.live_message)

        self.logger.info("driver.succeeded", url=url)
        return self.deployment

    async def _fail(self, error: Exception) -> Deployment:
        if isinstance(error, DeployHubError):
            reason = error.message
            self.logger.warning(
                "driver.failed",
                phase=self.deployment.status.value,
                error=reason,
                error_type=type(error).__name__,
            )
        else:
            reason = str(error) or type(error).__name__
            self.logger.exception("driver.failed", phase=self.deployment.status.value)

        if self.deployment.status.is_terminal:
            # Nothing left to transition; the record already has its outcome.
            return self.deployment

        updated = await self.storage.update_deployment(
            self.deployment.id,
            {
                "status": DeploymentStatus.FAILED,
                "completed_at": datetime.now(timezone.utc),
            },
        )
        if updated is not None:
            self.deployment = updated
        await self._update_project(
            {
                "status": ProjectStatus.FAILED,
                "deployed_url": None,
                "last_deployed_at": None,
            }
        )
        await self.ctx.emit(LogEntry.error(f"Deployment failed: {reason}"))
        return self.deployment
