"""External service clients."""

from deployhub.services.github import GitHubClient
from deployhub.services.vercel import VercelClient

__all__ = [
    "GitHubClient",
    "VercelClient",
]
