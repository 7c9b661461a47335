"""Deployment console.

Owns the lifecycle-scoped state (storage, channel registry, broadcaster) and
turns deploy requests into running drivers. Drivers run as independent
asyncio tasks; the deploy call returns as soon as the records exist.
"""

import asyncio
import weakref
from functools import partial
from typing import Callable
from uuid import uuid4

from deployhub.config import Settings
from deployhub.core.broadcaster import EventBroadcaster
from deployhub.core.driver import DeploymentDriver, DeployStrategy, SleepFunc
from deployhub.core.exceptions import (
    DeployHubError,
    DeploymentInProgressError,
    ProjectNotFoundError,
)
from deployhub.core.registry import ChannelRegistry
from deployhub.core.storage import MemoryStorage, Storage
from deployhub.core.strategies import build_strategy
from deployhub.core.subscriptions import SubscriptionService
from deployhub.models.deployment import Deployment, DeployRequest, DeployResponse
from deployhub.models.project import Project
from deployhub.services.github import GitHubClient
from deployhub.utils.logging import get_logger

StrategyFactory = Callable[[], DeployStrategy]


class DeploymentConsole:
    """Entry point for triggering deployments and watching them."""

    def __init__(
        self,
        settings: Settings,
        storage: Storage | None = None,
        registry: ChannelRegistry | None = None,
        github: GitHubClient | None = None,
        strategy_factory: StrategyFactory | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.settings = settings
        self.storage = storage or MemoryStorage()
        self.registry = registry or ChannelRegistry()
        self.broadcaster = EventBroadcaster(self.storage, self.registry)
        self.subscriptions = SubscriptionService(self.broadcaster)
        self.github = github or GitHubClient.from_settings(settings)
        self.strategy_factory = strategy_factory or partial(
            build_strategy, settings, self.github
        )
        self._sleep = sleep
        self._tasks: dict[str, asyncio.Task[Deployment]] = {}
        self._project_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self.logger = get_logger("console")

        if settings.vercel_token and not settings.vercel_deploy_real:
            self.logger.info(
                "console.simulated_deployments",
                reason="set VERCEL_DEPLOY_REAL=true in .env for real deployment",
            )

    async def deploy(self, request: DeployRequest) -> DeployResponse:
        """Create a project for ``request`` and start its first deployment."""
        project = await self.storage.create_project(request)
        deployment = await self._start(project)
        return DeployResponse(project_id=project.id, deployment_id=deployment.id)

    async def redeploy(self, project_id: str) -> DeployResponse:
        """Start a new deployment of an existing project."""
        project = await self.storage.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)

        # Held until the new record exists, so a concurrent redeploy sees it.
        async with self._project_lock(project_id):
            for existing in await self.storage.list_deployments(project_id):
                if not existing.status.is_terminal:
                    raise DeploymentInProgressError(project_id, existing.id)

            deployment = await self._start(project)
        return DeployResponse(project_id=project.id, deployment_id=deployment.id)

    def _project_lock(self, project_id: str) -> asyncio.Lock:
        lock = self._project_locks.get(project_id)
        if lock is None:
            lock = asyncio.Lock()
            self._project_locks[project_id] = lock
        return lock

    async def resolve_commit(self, project: Project) -> str:
        """Head commit of the project's branch, or a random placeholder."""
        try:
            return await self.github.get_branch_commit(project.repository, project.branch)
        except DeployHubError as e:
            placeholder = uuid4().hex[:8]
            self.logger.warning(
                "console.commit_lookup_failed",
                repository=project.repository,
                branch=project.branch,
                error=e.message,
                placeholder=placeholder,
            )
            return placeholder

    async def _start(self, project: Project) -> Deployment:
        commit_hash = await self.resolve_commit(project)
        deployment = await self.storage.create_deployment(project.id, commit_hash)
        self.launch(project, deployment)
        self.logger.info(
            "console.deployment_started",
            project_id=project.id,
            deployment_id=deployment.id,
            commit_hash=commit_hash,
        )
        return deployment

    def launch(self, project: Project, deployment: Deployment) -> asyncio.Task[Deployment]:
        """Run a driver for ``deployment`` in the background."""
        driver = DeploymentDriver(
            storage=self.storage,
            broadcaster=self.broadcaster,
            strategy=self.strategy_factory(),
            project=project,
            deployment=deployment,
            sleep=self._sleep,
            delay_scale=self.settings.simulated_delay_scale,
        )
        task = asyncio.create_task(driver.run(), name=f"deployment-{deployment.id}")
        self._tasks[deployment.id] = task
        task.add_done_callback(partial(self._on_driver_done, deployment.id))
        return task

    def _on_driver_done(self, deployment_id: str, task: asyncio.Task) -> None:
        self._tasks.pop(deployment_id, None)
        if task.cancelled():
            self.logger.warning("console.driver_cancelled", deployment_id=deployment_id)
            return
        error = task.exception()
        if error is not None:
            self.logger.error(
                "console.driver_crashed",
                deployment_id=deployment_id,
                error=str(error),
                exc_info=error,
            )

    def is_running(self, deployment_id: str) -> bool:
        return deployment_id in self._tasks

    @property
    def running(self) -> int:
        return len(self._tasks)

    async def wait(self, deployment_id: str | None = None) -> None:
        """Wait for one running driver, or all of them, to finish."""
        if deployment_id is not None:
            tasks = [self._tasks[deployment_id]] if deployment_id in self._tasks else []
        else:
            tasks = list(self._tasks.values())
        if tasks:
            await asyncio.wait(tasks)

    async def shutdown(self) -> None:
        """Cancel drivers still running at process exit."""
        tasks = list(self._tasks.values())
        if not tasks:
            return
        self.logger.warning("console.shutdown.cancelling", running=len(tasks))
        for task in tasks:
            task.cancel()
        await asyncio.wait(tasks)
