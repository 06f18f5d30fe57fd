"""Host to workspace resolution."""

from typing import Annotated

from fastapi import Depends

from hatchery.config import settings
from hatchery.core.errors import NotFoundError
from hatchery.modules.catalog.models import MigrationStatus, Workspace, WorkspaceDomain
from hatchery.modules.catalog.repos import WorkspaceRepo, WorkspaceRepository


def normalize_host(host: str) -> str:
    """Lowercase a Host header value and drop any port.

    Examples:
        >>> normalize_host("Acme.Example.com:443")
        'acme.example.com'
    """
    return host.strip().lower().rsplit(":", 1)[0].rstrip(".")


def extract_slug_from_host(host: str, base_domain: str) -> str | None:
    """Extract the slug from a ``{slug}.{base_domain}`` host.

    Returns:
        The slug, or None if the host is not a direct subdomain of the base
    """
    suffix = f".{base_domain.lower()}"
    if not host.endswith(suffix):
        return None

    slug = host[: -len(suffix)]
    if not slug or "." in slug:
        return None
    return slug


class WorkspaceResolver:
    """Resolves request hosts to provisioned workspaces.

    Only completed workspaces resolve. A workspace still being provisioned
    is invisible to every login path until its saga finishes.
    """

    def __init__(self, repo: WorkspaceRepository, base_domain: str | None = None) -> None:
        self.repo = repo
        self.base_domain = base_domain or settings.tenant_base_domain

    async def resolve(self, host: str) -> tuple[Workspace, WorkspaceDomain | None]:
        """Resolve a host to its workspace.

        Looks the host up in the domain table first, then falls back to
        reading the slug off a subdomain of the tenant base domain.

        Args:
            host: Raw Host header value

        Returns:
            Tuple of (workspace, matching domain row if any)

        Raises:
            NotFoundError: If no completed workspace serves this host
        """
        normalized = normalize_host(host)

        match = await self.repo.get_by_domain(normalized)
        if match is not None:
            workspace, domain = match
            if workspace.migration_status == MigrationStatus.COMPLETED:
                return workspace, domain

        slug = extract_slug_from_host(normalized, self.base_domain)
        if slug is not None:
            workspace_by_slug = await self.repo.get_by_slug(slug)
            if (
                workspace_by_slug is not None
                and workspace_by_slug.migration_status == MigrationStatus.COMPLETED
            ):
                return workspace_by_slug, None

        raise NotFoundError(
            "No workspace is served from this host",
            resource="workspace",
            details={"host": normalized},
        )


def get_workspace_resolver(repo: WorkspaceRepo) -> WorkspaceResolver:
    """Dependency that provides a WorkspaceResolver."""
    return WorkspaceResolver(repo)


WorkspaceResolverDep = Annotated[WorkspaceResolver, Depends(get_workspace_resolver)]
