"""Vercel REST client for git-sourced deployments."""

import re
from enum import Enum
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from deployhub.config import Settings
from deployhub.core.exceptions import ConfigurationError, ProviderError
from deployhub.utils.logging import get_logger


class ProviderState(str, Enum):
    """Provider build states the driver reacts to."""

    QUEUED = "queued"
    BUILDING = "building"
    READY = "ready"
    ERROR = "error"


_READY_STATES = {
    "QUEUED": ProviderState.QUEUED,
    "INITIALIZING": ProviderState.QUEUED,
    "BUILDING": ProviderState.BUILDING,
    "READY": ProviderState.READY,
    "ERROR": ProviderState.ERROR,
    "CANCELED": ProviderState.ERROR,
}


class VercelError(BaseModel):
    message: str = "Unknown error"
    code: str | None = None


class VercelDeployment(BaseModel):
    """The fields of a Vercel deployment the driver needs."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    url: str = ""
    name: str = ""
    ready_state: str = Field(default="QUEUED", alias="readyState")
    inspector_url: str | None = Field(default=None, alias="inspectorUrl")
    error: VercelError | None = None

    @property
    def state(self) -> ProviderState:
        return _READY_STATES.get(self.ready_state.upper(), ProviderState.QUEUED)

    @property
    def public_url(self) -> str:
        """Assigned address with a scheme."""
        if self.url.startswith(("http://", "https://")):
            return self.url
        return f"https://{self.url}"


def provider_project_name(name: str) -> str:
    """Vercel project names allow lower-case letters, digits and hyphens."""
    return re.sub(r"[^a-z0-9-]", "-", name.lower())


class VercelClient:
    """Creates Vercel deployments from GitHub repositories and polls them."""

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.vercel.com",
        team_id: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.team_id = team_id
        self.timeout = timeout
        self._transport = transport
        self.logger = get_logger("vercel")

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> "VercelClient":
        return cls(
            token=settings.vercel_token,
            base_url=settings.vercel_api_url,
            team_id=settings.vercel_team_id,
            timeout=settings.http_timeout,
            transport=transport,
        )

    def _headers(self) -> dict[str, str]:
        if not self.token:
            raise ConfigurationError("VERCEL_TOKEN not configured")
        # Validate token format (new tokens don't have colons)
        if ":" in self.token:
            raise ConfigurationError(
                "Invalid Vercel token format. Tokens with ':' are legacy format. "
                "Please create a new token at https://vercel.com/account/tokens"
            )
        return {"Authorization": f"Bearer {self.token}"}

    def _params(self) -> dict[str, str]:
        return {"teamId": self.team_id} if self.team_id else {}

    async def _request(
        self, method: str, path: str, json: dict[str, Any] | None = None
    ) -> Any:
        headers = self._headers()
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method, path, json=json, params=self._params(), headers=headers
                )
        except httpx.HTTPError as e:
            raise ProviderError(f"Vercel request failed: {e}", {"path": path}) from e

        if response.is_error:
            raise ProviderError(
                f"Vercel API error ({response.status_code}): {response.text[:500]}",
                {"path": path, "status_code": response.status_code},
            )
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                f"Vercel returned an invalid response: {e}", {"path": path}
            ) from e

    def _parse_deployment(self, path: str, data: Any) -> VercelDeployment:
        try:
            return VercelDeployment.model_validate(data)
        except ValidationError as e:
            raise ProviderError(
                f"Vercel returned an unexpected deployment: {e}", {"path": path}
            ) from e

    async def create_deployment(
        self, repo_id: int, branch: str, name: str
    ) -> VercelDeployment:
        """Start a deployment of ``branch`` of the GitHub repository ``repo_id``."""
        body = {
            "name": provider_project_name(name),
            "gitSource": {"type": "github", "repoId": repo_id, "ref": branch},
            "projectSettings": {
                "framework": None,
                "buildCommand": None,
                "installCommand": None,
                "outputDirectory": None,
                "devCommand": None,
                "commandForIgnoringBuildStep": "",
            },
        }
        path = "/v13/deployments"
        data = await self._request("POST", path, json=body)
        deployment = self._parse_deployment(path, data)
        self.logger.info(
            "vercel.deployment.created",
            provider_deployment_id=deployment.id,
            ready_state=deployment.ready_state,
        )
        return deployment

    async def get_deployment(self, deployment_id: str) -> VercelDeployment:
        path = f"/v13/deployments/{deployment_id}"
        data = await self._request("GET", path)
        return self._parse_deployment(path, data)
