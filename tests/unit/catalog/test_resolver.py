"""Tests for host to workspace resolution."""

from uuid import uuid4

import pytest

from hatchery.core.errors import NotFoundError
from hatchery.modules.catalog.services import (
    WorkspaceResolver,
    extract_slug_from_host,
    normalize_host,
)
from tests.fakes import FakeWorkspaceRepository


@pytest.mark.parametrize(
    ("host", "expected"),
    [
        ("acme.example.com", "acme.example.com"),
        ("Acme.Example.COM:8443", "acme.example.com"),
        (" acme.example.com. ", "acme.example.com"),
    ],
)
def test_normalize_host(host: str, expected: str):
    assert normalize_host(host) == expected


@pytest.mark.parametrize(
    ("host", "expected"),
    [
        ("acme.hatchery.test", "acme"),
        ("hatchery.test", None),
        ("deep.acme.hatchery.test", None),
        ("acme.other.test", None),
    ],
)
def test_extract_slug_from_host(host: str, expected: str | None):
    assert extract_slug_from_host(host, "hatchery.test") == expected


async def provisioned(repo: FakeWorkspaceRepository, slug: str, complete: bool = True):
    workspace_id = uuid4()
    await repo.create(workspace_id, slug.title(), slug, "aws-us-east-1")
    await repo.attach_resource(workspace_id, f"proj-{slug}", f"{slug}.hatchery.test")
    if complete:
        await repo.mark_completed(workspace_id)
    return workspace_id


class TestWorkspaceResolver:
    """Tests for WorkspaceResolver.resolve."""

    async def test_resolves_primary_domain(self, workspace_repo):
        workspace_id = await provisioned(workspace_repo, "acme")
        resolver = WorkspaceResolver(workspace_repo, base_domain="hatchery.test")

        workspace, domain = await resolver.resolve("ACME.hatchery.test:443")

        assert workspace.id == workspace_id
        assert domain is not None
        assert domain.is_primary is True

    async def test_falls_back_to_slug(self, workspace_repo):
        workspace_id = await provisioned(workspace_repo, "acme")
        workspace_repo.domains.clear()
        resolver = WorkspaceResolver(workspace_repo, base_domain="hatchery.test")

        workspace, domain = await resolver.resolve("acme.hatchery.test")

        assert workspace.id == workspace_id
        assert domain is None

    async def test_in_progress_workspace_is_hidden(self, workspace_repo):
        await provisioned(workspace_repo, "acme", complete=False)
        resolver = WorkspaceResolver(workspace_repo, base_domain="hatchery.test")

        with pytest.raises(NotFoundError):
            await resolver.resolve("acme.hatchery.test")

    async def test_unknown_host(self, workspace_repo):
        resolver = WorkspaceResolver(workspace_repo, base_domain="hatchery.test")

        with pytest.raises(NotFoundError):
            await resolver.resolve("nobody.hatchery.test")
