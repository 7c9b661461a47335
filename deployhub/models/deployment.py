"""Deployment data models."""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import Field

from deployhub.models.base import CamelModel
from deployhub.models.project import ProjectCreate


class DeploymentStatus(str, Enum):
    """Deployment phase. Only ever moves forward."""

    PENDING = "pending"
    BUILDING = "building"
    DEPLOYING = "deploying"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (DeploymentStatus.SUCCESS, DeploymentStatus.FAILED)


class Deployment(CamelModel):
    """One run of a project through the deployment phases."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    project_id: str
    status: DeploymentStatus = DeploymentStatus.PENDING
    commit_hash: str | None = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None


class DeployRequest(ProjectCreate):
    """Body of the deploy trigger."""


class DeployResponse(CamelModel):
    """Returned as soon as the deployment record exists."""

    project_id: str
    deployment_id: str
    message: str = "Deployment started"
