"""Pytest configuration and fixtures."""

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from deployhub.config import Settings
from deployhub.core.broadcaster import EventBroadcaster
from deployhub.core.console import DeploymentConsole
from deployhub.core.driver import DeploymentDriver, DeployStrategy
from deployhub.core.exceptions import SourceHostError
from deployhub.core.registry import ChannelRegistry
from deployhub.core.storage import MemoryStorage
from deployhub.core.subscriptions import SubscriptionService
from deployhub.main import create_app
from deployhub.models.deployment import DeploymentStatus, DeployRequest
from deployhub.models.logs import LogEntry
from deployhub.models.project import ProjectCreate, ProjectType
from deployhub.services.vercel import VercelDeployment


async def instant_sleep(seconds: float) -> None:
    """Yield to the event loop without waiting."""
    await asyncio.sleep(0)


class FakeGitHub:
    """In-process stand-in for GitHubClient."""

    def __init__(self, repo_id: int = 4242, commit: str | None = "a1b2c3d4e5f6"):
        self.repo_id = repo_id
        self.commit = commit
        self.repo_lookups: list[str] = []

    async def get_repository_id(self, repository: str) -> int:
        self.repo_lookups.append(repository)
        if self.repo_id is None:
            raise SourceHostError(f"GitHub API error (404): {repository} not found")
        return self.repo_id

    async def get_branch_commit(self, repository: str, branch: str) -> str:
        if self.commit is None:
            raise SourceHostError("GitHub API error (401): Bad credentials")
        return self.commit


class FakeVercel:
    """Stand-in for VercelClient that replays a scripted sequence of polls.

    Each script item is either a ready state string or an exception to raise.
    The last item repeats once the script runs out.
    """

    def __init__(self, script: list, url: str = "demo-abc123.vercel.app", error: str = "Build exploded"):
        self.script = list(script)
        self.url = url
        self.error = error
        self.polls = 0
        self.created: list[tuple[int, str, str]] = []

    async def create_deployment(self, repo_id: int, branch: str, name: str) -> VercelDeployment:
        self.created.append((repo_id, branch, name))
        return VercelDeployment(id="dpl_test123", url=self.url, readyState="QUEUED")

    async def get_deployment(self, deployment_id: str) -> VercelDeployment:
        index = min(self.polls, len(self.script) - 1)
        self.polls += 1
        step = self.script[index]
        if isinstance(step, Exception):
            raise step
        payload = {"id": deployment_id, "url": self.url, "readyState": step}
        if step == "ERROR":
            payload["error"] = {"message": self.error}
        return VercelDeployment.model_validate(payload)


class TimelineStorage(MemoryStorage):
    """MemoryStorage that records status changes and log lines in order."""

    def __init__(self) -> None:
        super().__init__()
        self.timeline: list[tuple[str, str]] = []

    async def update_deployment(self, deployment_id: str, updates: dict):
        if "status" in updates:
            self.timeline.append(("status", DeploymentStatus(updates["status"]).value))
        return await super().update_deployment(deployment_id, updates)

    async def add_deployment_log(self, deployment_id: str, entry: LogEntry) -> None:
        self.timeline.append((entry.level.value, entry.message))
        await super().add_deployment_log(deployment_id, entry)

    @property
    def statuses(self) -> list[str]:
        return [value for kind, value in self.timeline if kind == "status"]


@pytest.fixture
def settings() -> Settings:
    """Settings with instant narration and no outbound credentials."""
    return Settings(
        app_env="development",
        simulated_delay_scale=0.0,
        provider_poll_interval=0.0,
        vercel_deploy_real=False,
        vercel_token="",
        github_token="",
        log_directory="",
    )


@pytest.fixture
def storage() -> TimelineStorage:
    """Create a fresh storage."""
    return TimelineStorage()


@pytest.fixture
def registry() -> ChannelRegistry:
    return ChannelRegistry()


@pytest.fixture
def broadcaster(storage: MemoryStorage, registry: ChannelRegistry) -> EventBroadcaster:
    return EventBroadcaster(storage, registry)


@pytest.fixture
def subscriptions(broadcaster: EventBroadcaster) -> SubscriptionService:
    return SubscriptionService(broadcaster)


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def console(settings: Settings, github: FakeGitHub, storage: TimelineStorage) -> DeploymentConsole:
    """Console running the simulated strategy with instant delays."""
    return DeploymentConsole(settings, storage=storage, github=github, sleep=instant_sleep)


@pytest.fixture
def make_driver(storage: TimelineStorage, broadcaster: EventBroadcaster):
    """Factory for a driver over a fresh project and deployment."""

    async def factory(
        strategy: DeployStrategy,
        project_type: ProjectType = ProjectType.FRONTEND,
        name: str = "demo",
    ) -> DeploymentDriver:
        project = await storage.create_project(
            ProjectCreate(name=name, repository="acme/demo", branch="main", type=project_type)
        )
        deployment = await storage.create_deployment(project.id, "abc12345")
        return DeploymentDriver(
            storage=storage,
            broadcaster=broadcaster,
            strategy=strategy,
            project=project,
            deployment=deployment,
            sleep=instant_sleep,
            delay_scale=0.0,
        )

    return factory


@pytest.fixture
def app(settings: Settings, console: DeploymentConsole):
    return create_app(settings=settings, console=console)


@pytest.fixture
async def client(app) -> AsyncClient:
    """Create an async test client bound to a fresh console."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def project_data() -> ProjectCreate:
    return ProjectCreate(
        name="demo",
        repository="acme/demo",
        branch="main",
        type=ProjectType.FRONTEND,
    )


@pytest.fixture
def deploy_request() -> DeployRequest:
    return DeployRequest(
        name="demo",
        repository="acme/demo",
        branch="main",
        type=ProjectType.FRONTEND,
    )
