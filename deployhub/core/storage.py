"""State store for projects, deployments and deployment log history.

Records are replaced wholesale on update so readers never see a half-merged
record. Log history is working memory only and is lost on restart.
"""

from abc import ABC, abstractmethod
from typing import Any

from deployhub.models.deployment import Deployment, DeploymentStatus
from deployhub.models.logs import LogEntry
from deployhub.models.project import Project, ProjectCreate, ProjectStatus
from deployhub.utils.logging import get_logger


class Storage(ABC):
    """Data access for the deployment core. No policy lives here."""

    # Projects
    @abstractmethod
    async def list_projects(self) -> list[Project]: ...

    @abstractmethod
    async def get_project(self, project_id: str) -> Project | None: ...

    @abstractmethod
    async def create_project(self, data: ProjectCreate) -> Project: ...

    @abstractmethod
    async def update_project(
        self, project_id: str, updates: dict[str, Any]
    ) -> Project | None: ...

    # Deployments
    @abstractmethod
    async def list_deployments(
        self, project_id: str | None = None
    ) -> list[Deployment]: ...

    @abstractmethod
    async def get_deployment(self, deployment_id: str) -> Deployment | None: ...

    @abstractmethod
    async def create_deployment(
        self, project_id: str, commit_hash: str | None = None
    ) -> Deployment: ...

    @abstractmethod
    async def update_deployment(
        self, deployment_id: str, updates: dict[str, Any]
    ) -> Deployment | None: ...

    # Deployment logs
    @abstractmethod
    async def get_deployment_logs(self, deployment_id: str) -> list[LogEntry]: ...

    @abstractmethod
    async def add_deployment_log(self, deployment_id: str, entry: LogEntry) -> None: ...

    @abstractmethod
    async def clear_deployment_logs(self, deployment_id: str) -> None: ...


def _merge(record: Any, updates: dict[str, Any]) -> Any:
    """Shallow merge: keys absent from ``updates`` keep their current value."""
    data = record.model_dump()
    data.update(updates)
    return type(record).model_validate(data)


class MemoryStorage(Storage):
    """In-process storage backed by dictionaries."""

    def __init__(self) -> None:
        self._projects: dict[str, Project] = {}
        self._deployments: dict[str, Deployment] = {}
        self._logs: dict[str, list[LogEntry]] = {}
        self.logger = get_logger("storage")

    async def list_projects(self) -> list[Project]:
        """Most recently deployed first; never-deployed projects last."""
        projects = list(self._projects.values())
        projects.sort(
            key=lambda p: p.last_deployed_at.timestamp() if p.last_deployed_at else 0,
            reverse=True,
        )
        return projects

    async def get_project(self, project_id: str) -> Project | None:
        return self._projects.get(project_id)

    async def create_project(self, data: ProjectCreate) -> Project:
        project = Project(
            name=data.name,
            repository=data.repository,
            branch=data.branch,
            type=data.type,
            status=ProjectStatus.IDLE,
        )
        self._projects[project.id] = project
        self.logger.info("storage.project.created", project_id=project.id, name=project.name)
        return project

    async def update_project(
        self, project_id: str, updates: dict[str, Any]
    ) -> Project | None:
        project = self._projects.get(project_id)
        if project is None:
            return None
        updated = _merge(project, updates)
        self._projects[project_id] = updated
        self.logger.debug(
            "storage.project.updated",
            project_id=project_id,
            fields=sorted(updates),
        )
        return updated

    async def list_deployments(self, project_id: str | None = None) -> list[Deployment]:
        """Newest first, optionally restricted to one project."""
        deployments = [
            d
            for d in self._deployments.values()
            if project_id is None or d.project_id == project_id
        ]
        deployments.sort(key=lambda d: d.started_at, reverse=True)
        return deployments

    async def get_deployment(self, deployment_id: str) -> Deployment | None:
        return self._deployments.get(deployment_id)

    async def create_deployment(
        self, project_id: str, commit_hash: str | None = None
    ) -> Deployment:
        deployment = Deployment(
            project_id=project_id,
            status=DeploymentStatus.PENDING,
            commit_hash=commit_hash,
        )
        self._deployments[deployment.id] = deployment
        self._logs[deployment.id] = []
        self.logger.info(
            "storage.deployment.created",
            deployment_id=deployment.id,
            project_id=project_id,
        )
        return deployment

    async def update_deployment(
        self, deployment_id: str, updates: dict[str, Any]
    ) -> Deployment | None:
        deployment = self._deployments.get(deployment_id)
        if deployment is None:
            return None
        updated = _merge(deployment, updates)
        self._deployments[deployment_id] = updated
        self.logger.debug(
            "storage.deployment.updated",
            deployment_id=deployment_id,
            status=updated.status.value,
        )
        return updated

    async def get_deployment_logs(self, deployment_id: str) -> list[LogEntry]:
        """A copy of the history, oldest first."""
        return list(self._logs.get(deployment_id, ()))

    async def add_deployment_log(self, deployment_id: str, entry: LogEntry) -> None:
        self._logs.setdefault(deployment_id, []).append(entry)

    async def clear_deployment_logs(self, deployment_id: str) -> None:
        self._logs.pop(deployment_id, None)
