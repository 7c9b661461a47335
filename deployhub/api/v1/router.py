"""Main router for API v1."""

from fastapi import APIRouter

from deployhub.api.v1 import deployments, health, projects, repositories

router = APIRouter(prefix="/v1")

# Include sub-routers
router.include_router(health.router, tags=["health"])
router.include_router(deployments.router, tags=["deployments"])
router.include_router(projects.router, prefix="/projects", tags=["projects"])
router.include_router(
    repositories.router,
    prefix="/repositories",
    tags=["repositories"],
)
