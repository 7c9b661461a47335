"""Project endpoints."""

from fastapi import APIRouter, status

from deployhub.api.deps import ConsoleDep, ProjectDep
from deployhub.models.deployment import Deployment, DeployResponse
from deployhub.models.project import Project

router = APIRouter()


@router.get(
    "",
    response_model=list[Project],
    summary="List all projects",
)
async def list_projects(console: ConsoleDep) -> list[Project]:
    """Most recently deployed projects first."""
    return await console.storage.list_projects()


@router.get(
    "/{project_id}",
    response_model=Project,
    summary="Get project details",
)
async def get_project(project: ProjectDep) -> Project:
    return project


@router.get(
    "/{project_id}/deployments",
    response_model=list[Deployment],
    summary="List a project's deployments",
)
async def list_project_deployments(
    project: ProjectDep, console: ConsoleDep
) -> list[Deployment]:
    """Deployments of the project, newest first."""
    return await console.storage.list_deployments(project.id)


@router.post(
    "/{project_id}/deploy",
    response_model=DeployResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Redeploy a project",
    description="Starts a new deployment of the project's repository and branch. Returns 409 while another deployment of the project is still running.",
)
async def redeploy_project(project: ProjectDep, console: ConsoleDep) -> DeployResponse:
    return await console.redeploy(project.id)
