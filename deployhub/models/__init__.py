"""Data models for DeployHub."""

from deployhub.models.deployment import (
    Deployment,
    DeploymentStatus,
    DeployRequest,
    DeployResponse,
)
from deployhub.models.logs import (
    LogEntry,
    LogLevel,
    LogMessage,
    SubscribeMessage,
)
from deployhub.models.project import (
    Project,
    ProjectCreate,
    ProjectStatus,
    ProjectType,
)

__all__ = [
    # Project models
    "Project",
    "ProjectCreate",
    "ProjectStatus",
    "ProjectType",
    # Deployment models
    "Deployment",
    "DeploymentStatus",
    "DeployRequest",
    "DeployResponse",
    # Log models
    "LogEntry",
    "LogLevel",
    "LogMessage",
    "SubscribeMessage",
]
