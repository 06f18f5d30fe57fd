"""Pydantic schemas for slug checks and workspace creation."""

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from hatchery.core.constants import MAX_SLUG_LENGTH, MAX_WORKSPACE_NAME_LENGTH, MIN_SLUG_LENGTH


class SlugAvailabilityResponse(BaseModel):
    """Advisory answer; the slug can still be taken before creation."""

    available: bool
    reason: str | None = None


class CreateWorkspaceRequest(BaseModel):
    """Schema for creating a workspace after email verification."""

    email: EmailStr
    name: str = Field(..., min_length=1, max_length=MAX_WORKSPACE_NAME_LENGTH)
    slug: str = Field(..., min_length=MIN_SLUG_LENGTH, max_length=MAX_SLUG_LENGTH)
    verification_token: str = Field(..., min_length=1)


class CreateWorkspaceResponse(BaseModel):
    success: bool = True
    workspace_id: UUID
    slug: str
    redirect_url: str
