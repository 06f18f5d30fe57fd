"""Pydantic schemas for catalog lookups."""

from uuid import UUID

from pydantic import BaseModel


class ResolvedWorkspaceResponse(BaseModel):
    """Workspace served from a host."""

    workspace_id: UUID
    slug: str
    name: str
    domain: str
    is_primary: bool
