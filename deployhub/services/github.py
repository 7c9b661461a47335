"""GitHub client used to resolve repositories, branches and commits."""

from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from deployhub.config import Settings
from deployhub.core.exceptions import ConfigurationError, SourceHostError
from deployhub.utils.logging import get_logger


class GitHubRepository(BaseModel):
    """Repository summary shown in the repository picker."""

    id: int
    name: str
    full_name: str
    description: str | None = None
    private: bool = False
    default_branch: str = "main"
    updated_at: str | None = None


class BranchCommit(BaseModel):
    sha: str
    url: str | None = None


class GitHubBranch(BaseModel):
    name: str
    commit: BranchCommit


def split_repository(repository: str) -> tuple[str, str]:
    """Split ``owner/name`` into its two parts."""
    owner, _, name = repository.partition("/")
    if not owner or not name:
        raise SourceHostError(
            f"Invalid repository '{repository}', expected owner/name",
            {"repository": repository},
        )
    return owner, name


class GitHubClient:
    """Thin async wrapper over the GitHub REST API.

    A fresh HTTP client is opened per call: access tokens can be rotated
    between calls and must not be cached in a long-lived connection.
    """

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self.logger = get_logger("github")

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> "GitHubClient":
        return cls(
            token=settings.github_token,
            base_url=settings.github_api_url,
            timeout=settings.http_timeout,
            transport=transport,
        )

    def _headers(self) -> dict[str, str]:
        if not self.token:
            raise ConfigurationError(
                "GitHub not connected. Set GITHUB_TOKEN to an access token."
            )
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        headers = self._headers()
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(path, params=params, headers=headers)
        except httpx.HTTPError as e:
            self.logger.warning("github.request_failed", path=path, error=str(e))
            raise SourceHostError(f"GitHub request failed: {e}", {"path": path}) from e

        if response.is_error:
            raise SourceHostError(
                f"GitHub API error ({response.status_code}): {response.text[:500]}",
                {"path": path, "status_code": response.status_code},
            )
        try:
            return response.json()
        except ValueError as e:
            raise SourceHostError(
                f"GitHub returned an invalid response: {e}", {"path": path}
            ) from e

    async def get_repository_id(self, repository: str) -> int:
        """Numeric id of ``owner/name``."""
        owner, name = split_repository(repository)
        path = f"/repos/{owner}/{name}"
        data = await self._get(path)
        try:
            return int(data["id"])
        except (KeyError, TypeError, ValueError) as e:
            raise _unexpected_shape(path, e) from e

    async def get_branch_commit(self, repository: str, branch: str) -> str:
        """Sha of the latest commit on ``branch``."""
        owner, name = split_repository(repository)
        path = f"/repos/{owner}/{name}/branches/{branch}"
        data = await self._get(path)
        try:
            return GitHubBranch.model_validate(data).commit.sha
        except ValidationError as e:
            raise _unexpected_shape(path, e) from e

    async def list_repositories(self, limit: int = 50) -> list[GitHubRepository]:
        """Repositories of the authenticated user, most recently updated first."""
        path = "/user/repos"
        data = await self._get(path, params={"sort": "updated", "per_page": limit})
        try:
            return [GitHubRepository.model_validate(repo) for repo in data]
        except (TypeError, ValidationError) as e:
            raise _unexpected_shape(path, e) from e

    async def list_branches(self, repository: str) -> list[GitHubBranch]:
        owner, name = split_repository(repository)
        path = f"/repos/{owner}/{name}/branches"
        data = await self._get(path, params={"per_page": 100})
        try:
            return [GitHubBranch.model_validate(branch) for branch in data]
        except (TypeError, ValidationError) as e:
            raise _unexpected_shape(path, e) from e


def _unexpected_shape(path: str, error: Exception) -> SourceHostError:
    return SourceHostError(
        f"GitHub returned an unexpected response: {error}", {"path": path}
    )
