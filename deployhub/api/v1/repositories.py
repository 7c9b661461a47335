"""Repository picker endpoints backed by GitHub."""

from fastapi import APIRouter

from deployhub.api.deps import ConsoleDep
from deployhub.services.github import GitHubBranch, GitHubRepository

router = APIRouter()


@router.get(
    "",
    response_model=list[GitHubRepository],
    summary="List the connected account's repositories",
)
async def list_repositories(console: ConsoleDep) -> list[GitHubRepository]:
    return await console.github.list_repositories()


@router.get(
    "/{owner}/{repo}/branches",
    response_model=list[GitHubBranch],
    summary="List a repository's branches",
)
async def list_branches(owner: str, repo: str, console: ConsoleDep) -> list[GitHubBranch]:
    return await console.github.list_branches(f"{owner}/{repo}")
