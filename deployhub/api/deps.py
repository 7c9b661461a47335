"""Dependency injection for API endpoints."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from deployhub.core.console import DeploymentConsole
from deployhub.models.deployment import Deployment
from deployhub.models.project import Project


async def get_console(request: Request) -> DeploymentConsole:
    """Get the console owned by the running application."""
    return request.app.state.console


async def get_project_by_id(
    project_id: str,
    console: Annotated[DeploymentConsole, Depends(get_console)],
) -> Project:
    """Get a project by ID or raise 404."""
    project = await console.storage.get_project(project_id)
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Project not found: {project_id}",
        )
    return project


async def get_deployment_by_id(
    deployment_id: str,
    console: Annotated[DeploymentConsole, Depends(get_console)],
) -> Deployment:
    """Get a deployment by ID or raise 404."""
    deployment = await console.storage.get_deployment(deployment_id)
    if not deployment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Deployment not found: {deployment_id}",
        )
    return deployment


# Type aliases for cleaner signatures
ConsoleDep = Annotated[DeploymentConsole, Depends(get_console)]
ProjectDep = Annotated[Project, Depends(get_project_by_id)]
DeploymentDep = Annotated[Deployment, Depends(get_deployment_by_id)]
