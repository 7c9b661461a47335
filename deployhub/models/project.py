"""Project-related data models."""

import re
from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import Field

from deployhub.models.base import CamelModel

REPOSITORY_PATTERN = r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$"


class ProjectType(str, Enum):
    """What kind of application a project builds."""

    FRONTEND = "frontend"
    BACKEND = "backend"
    FULLSTACK = "fullstack"

    @property
    def has_frontend(self) -> bool:
        return self in (ProjectType.FRONTEND, ProjectType.FULLSTACK)

    @property
    def has_backend(self) -> bool:
        return self in (ProjectType.BACKEND, ProjectType.FULLSTACK)


class ProjectStatus(str, Enum):
    """Project deployment status."""

    IDLE = "idle"
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    FAILED = "failed"


class ProjectCreate(CamelModel):
    """Fields needed to create a project record."""

    name: str = Field(..., min_length=1, max_length=100)
    repository: str = Field(..., pattern=REPOSITORY_PATTERN)
    branch: str = Field(default="main", min_length=1)
    type: ProjectType


class Project(CamelModel):
    """A deployable repository/branch pair and the outcome of its last deploy."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    repository: str
    branch: str = "main"
    type: ProjectType
    status: ProjectStatus = ProjectStatus.IDLE
    deployed_url: str | None = None
    last_deployed_at: datetime | None = None

    @property
    def owner_and_name(self) -> tuple[str, str]:
        """Split ``repository`` into its owner and repository name."""
        owner, _, name = self.repository.partition("/")
        return owner, name

    @property
    def repository_url(self) -> str:
        return f"https://github.com/{self.repository}"

    @property
    def slug(self) -> str:
        """Lower-cased name with whitespace runs collapsed to hyphens."""
        return re.sub(r"\s+", "-", self.name.lower())
