"""Deploy trigger, deployment records and their log streams."""

import asyncio
import json

from fastapi import APIRouter, Query, status
from sse_starlette.sse import EventSourceResponse

from deployhub.api.deps import ConsoleDep, DeploymentDep
from deployhub.core.registry import Observer
from deployhub.models.deployment import Deployment, DeployRequest, DeployResponse
from deployhub.models.logs import LogEntry

router = APIRouter()

KEEPALIVE_SECONDS = 30.0


@router.post(
    "/deploy",
    response_model=DeployResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Deploy a repository branch",
    description="Creates the project and deployment records and returns immediately; progress is streamed over /ws or the SSE endpoint.",
)
async def deploy(data: DeployRequest, console: ConsoleDep) -> DeployResponse:
    """Start a new deployment."""
    return await console.deploy(data)


@router.get(
    "/deployments/{deployment_id}",
    response_model=Deployment,
    summary="Get deployment details",
)
async def get_deployment(deployment: DeploymentDep) -> Deployment:
    return deployment


@router.get(
    "/deployments/{deployment_id}/logs",
    response_model=list[LogEntry],
    summary="Get recorded deployment logs",
)
async def get_deployment_logs(
    deployment: DeploymentDep, console: ConsoleDep
) -> list[LogEntry]:
    """Recorded log history, oldest first."""
    return await console.storage.get_deployment_logs(deployment.id)


@router.delete(
    "/deployments/{deployment_id}/logs",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Clear recorded deployment logs",
)
async def clear_deployment_logs(deployment: DeploymentDep, console: ConsoleDep) -> None:
    await console.broadcaster.clear_history(deployment.id)


@router.get(
    "/deployments/{deployment_id}/stream",
    summary="Stream deployment logs (SSE)",
)
async def stream_deployment_logs(
    deployment: DeploymentDep,
    console: ConsoleDep,
    follow: bool = Query(True, description="Keep streaming live entries after the backfill"),
) -> EventSourceResponse:
    """Backfill followed by live log entries using Server-Sent Events."""
    observer = Observer(label="sse")
    await console.subscriptions.subscribe(observer, deployment.id)
    live = follow and console.is_running(deployment.id)

    async def event_generator():
        try:
            if not live:
                for message in observer.drain():
                    yield {"event": "log", "data": json.dumps(message["log"])}
                return

            while True:
                try:
                    message = await observer.get(timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    if not console.is_running(deployment.id):
                        return
                    yield {"event": "keepalive", "data": "{}"}
                    continue

                if message is None:
                    return
                yield {"event": "log", "data": json.dumps(message["log"])}
        finally:
            console.subscriptions.release(observer)

    return EventSourceResponse(event_generator())
