"""Catalog API routes."""

from fastapi import APIRouter, Query

from hatchery.modules.catalog.schemas import ResolvedWorkspaceResponse
from hatchery.modules.catalog.services import WorkspaceResolverDep, normalize_host


router = APIRouter(prefix="/workspaces", tags=["workspaces"])


@router.get(
    "/resolve",
    response_model=ResolvedWorkspaceResponse,
    summary="Resolve a host to its workspace",
    description="Returns the completed workspace served from the given host.",
)
async def resolve_workspace(
    resolver: WorkspaceResolverDep,
    host: str = Query(..., min_length=1, max_length=255),
) -> ResolvedWorkspaceResponse:
    """Resolve a host to its workspace."""
    workspace, domain = await resolver.resolve(host)

    return ResolvedWorkspaceResponse(
        workspace_id=workspace.id,
        slug=workspace.slug,
        name=workspace.name,
        domain=domain.domain if domain else normalize_host(host),
        is_primary=domain.is_primary if domain else False,
    )
