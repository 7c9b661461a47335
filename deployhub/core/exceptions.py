"""Custom exceptions for DeployHub."""

from typing import Any


class DeployHubError(Exception):
    """Base exception for DeployHub."""

    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(DeployHubError):
    """Required configuration (usually a credential) is missing or invalid."""

    status_code = 503


class ProjectNotFoundError(DeployHubError):
    """Project not found."""

    status_code = 404

    def __init__(self, project_id: str):
        super().__init__(
            f"Project not found: {project_id}",
            {"project_id": project_id},
        )


class DeploymentNotFoundError(DeployHubError):
    """Deployment not found."""

    status_code = 404

    def __init__(self, deployment_id: str):
        super().__init__(
            f"Deployment not found: {deployment_id}",
            {"deployment_id": deployment_id},
        )


class DeploymentInProgressError(DeployHubError):
    """A project already has a deployment that has not finished."""

    status_code = 409

    def __init__(self, project_id: str, deployment_id: str):
        super().__init__(
            f"Project {project_id} is already deploying ({deployment_id})",
            {"project_id": project_id, "deployment_id": deployment_id},
        )


class SourceHostError(DeployHubError):
    """The source-hosting API (GitHub) failed."""

    status_code = 502


class ProviderError(DeployHubError):
    """The deployment provider API (Vercel) failed."""

    status_code = 502


class ProviderBuildError(ProviderError):
    """The provider reported that the build itself failed."""

    def __init__(self, message: str, provider_deployment_id: str | None = None):
        super().__init__(
            f"Vercel build failed: {message}",
            {"provider_deployment_id": provider_deployment_id},
        )


class DeploymentTimeoutError(DeployHubError):
    """The provider did not reach a ready state within the poll ceiling."""

    def __init__(self, attempts: int, elapsed_seconds: float):
        super().__init__(
            "Deployment timeout - build took too long",
            {"attempts": attempts, "elapsed_seconds": elapsed_seconds},
        )


class InvalidStateTransition(DeployHubError):
    """A deployment status change that does not move strictly forward."""

    def __init__(self, current: str, new: str):
        super().__init__(
            f"Cannot transition from {current} to {new}",
            {"current": current, "new": new},
        )


class ProtocolError(DeployHubError):
    """An observer sent a message that is not part of the protocol."""

    status_code = 400
