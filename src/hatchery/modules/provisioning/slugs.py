"""Slug rules and the advisory availability check."""

import re
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends

from hatchery.core.constants import MAX_SLUG_LENGTH, MIN_SLUG_LENGTH
from hatchery.modules.catalog.repos import WorkspaceRepo, WorkspaceRepository


RESERVED_SLUGS = frozenset(
    {
        "app",
        "api",
        "admin",
        "www",
        "dashboard",
        "help",
        "support",
        "blog",
        "docs",
        "status",
        "mail",
        "email",
        "ftp",
        "cdn",
        "static",
        "assets",
    }
)

SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")


@dataclass(frozen=True)
class SlugAvailability:
    available: bool
    reason: str | None = None


def validate_slug_format(slug: str) -> str | None:
    """Check a slug against the format and reserved-word rules.

    Slugs are expected in their final lowercase form; uppercase letters
    are rejected rather than folded so the caller sees the exact URL.

    Args:
        slug: Candidate slug

    Returns:
        A human-readable reason if the slug is unusable, None if it is fine
    """
    if len(slug) < MIN_SLUG_LENGTH:
        return f"Slug must be at least {MIN_SLUG_LENGTH} characters"
    if len(slug) > MAX_SLUG_LENGTH:
        return f"Slug must be at most {MAX_SLUG_LENGTH} characters"
    if not SLUG_PATTERN.match(slug):
        return "Slug can only contain lowercase letters, numbers, and hyphens"
    if slug.startswith("-") or slug.endswith("-"):
        return "Slug cannot start or end with a hyphen"
    if slug in RESERVED_SLUGS:
        return "This URL is reserved"
    return None


class SlugRegistry:
    """Answers whether a slug can be claimed right now.

    The answer is advisory. Between this check and the catalog insert
    another request may take the slug; the unique constraint on
    ``workspace.slug`` decides that race.
    """

    def __init__(self, workspace_repo: WorkspaceRepository) -> None:
        self.workspace_repo = workspace_repo

    async def check_availability(self, slug: str) -> SlugAvailability:
        reason = validate_slug_format(slug)
        if reason:
            return SlugAvailability(available=False, reason=reason)

        if await self.workspace_repo.get_by_slug(slug) is not None:
            return SlugAvailability(available=False, reason="This URL is already taken")

        return SlugAvailability(available=True)


def get_slug_registry(workspace_repo: WorkspaceRepo) -> SlugRegistry:
    """Dependency that provides a SlugRegistry."""
    return SlugRegistry(workspace_repo=workspace_repo)


SlugRegistryDep = Annotated[SlugRegistry, Depends(get_slug_registry)]
