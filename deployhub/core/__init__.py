"""Core functionality for DeployHub."""

from deployhub.core.exceptions import (
    ConfigurationError,
    DeployHubError,
    DeploymentInProgressError,
    DeploymentNotFoundError,
    DeploymentTimeoutError,
    InvalidStateTransition,
    ProjectNotFoundError,
    ProtocolError,
    ProviderBuildError,
    ProviderError,
    SourceHostError,
)
from deployhub.core.storage import MemoryStorage, Storage
from deployhub.core.registry import ChannelRegistry, Observer
from deployhub.core.broadcaster import EventBroadcaster
from deployhub.core.subscriptions import SubscriptionService

__all__ = [
    "ConfigurationError",
    "DeployHubError",
    "DeploymentInProgressError",
    "DeploymentNotFoundError",
    "DeploymentTimeoutError",
    "InvalidStateTransition",
    "ProjectNotFoundError",
    "ProtocolError",
    "ProviderBuildError",
    "ProviderError",
    "SourceHostError",
    "MemoryStorage",
    "Storage",
    "ChannelRegistry",
    "Observer",
    "EventBroadcaster",
    "SubscriptionService",
]
