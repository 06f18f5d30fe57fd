"""Workspace provisioning API routes."""

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

import structlog
from fastapi import APIRouter, Query, status

from hatchery.core.constants import MAX_SLUG_LENGTH, MIN_SLUG_LENGTH
from hatchery.modules.provisioning.schemas import (
    CreateWorkspaceRequest,
    CreateWorkspaceResponse,
    SlugAvailabilityResponse,
)
from hatchery.modules.provisioning.services import ProvisioningOrchestratorDep
from hatchery.modules.provisioning.slugs import SlugRegistryDep


logger = structlog.get_logger()

router = APIRouter(prefix="/get-started", tags=["get-started"])

T = TypeVar("T")

# Strong references to sagas still running after their client went away
_detached_tasks: set[asyncio.Task[Any]] = set()


def _log_detached_result(task: asyncio.Task[Any]) -> None:
    _detached_tasks.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.debug("provisioning_task_failed", error=repr(task.exception()))


async def run_to_completion(coro: Coroutine[Any, Any, T]) -> T:
    """Await a coroutine that keeps running if the caller is cancelled.

    A disconnecting client cancels the request handler; the saga must
    still reach either completed or a finished rollback.
    """
    task = asyncio.create_task(coro)
    _detached_tasks.add(task)
    task.add_done_callback(_log_detached_result)
    return await asyncio.shield(task)


@router.get(
    "/slug-availability",
    response_model=SlugAvailabilityResponse,
    summary="Check slug availability",
)
async def check_slug_availability(
    registry: SlugRegistryDep,
    slug: str = Query(..., min_length=MIN_SLUG_LENGTH, max_length=MAX_SLUG_LENGTH),
) -> SlugAvailabilityResponse:
    """Check whether a slug can be claimed right now."""
    availability = await registry.check_availability(slug)
    return SlugAvailabilityResponse(available=availability.available, reason=availability.reason)


@router.post(
    "/workspaces",
    response_model=CreateWorkspaceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a workspace",
    description=(
        "Provisions the workspace database, applies its schema, seeds the owner "
        "and returns a redirect that logs the owner in."
    ),
)
async def create_workspace(
    data: CreateWorkspaceRequest,
    orchestrator: ProvisioningOrchestratorDep,
) -> CreateWorkspaceResponse:
    """Create a workspace for a verified email."""
    result = await run_to_completion(
        orchestrator.create_workspace(
            email=data.email,
            name=data.name,
            slug=data.slug,
            verification_token=data.verification_token,
        )
    )

    return CreateWorkspaceResponse(
        workspace_id=result.workspace_id,
        slug=result.slug,
        redirect_url=result.redirect_url,
    )
