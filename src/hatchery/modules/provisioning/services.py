"""Workspace provisioning saga.

Turns a verified email and a slug into a running tenant:

    validating -> catalog-reserved -> resource-creating -> resource-ready
        -> migrating -> seeding -> token-issued -> completed

Nothing spans the whole run transactionally. Every side effect that
commits registers a compensation, and a failure from catalog-reserved
onwards runs them in reverse (rolling-back -> aborted) before the
original error is re-raised.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Annotated
from urllib.parse import urlencode
from uuid import UUID, uuid4

import structlog
from fastapi import Depends
from sqlalchemy.exc import IntegrityError

from hatchery.config import settings
from hatchery.core.errors import AppException, ProvisioningFailedError, SlugTakenError
from hatchery.modules.catalog.repos import WorkspaceRepo, WorkspaceRepository
from hatchery.modules.provisioning.bootstrap import (
    TenantBootstrapper,
    TenantSeed,
    get_tenant_bootstrapper,
)
from hatchery.modules.provisioning.neon_client import NeonClient, NeonClientDep
from hatchery.modules.provisioning.slugs import SlugRegistry
from hatchery.modules.verification.services import (
    VerificationService,
    VerificationSvc,
    normalize_email,
)


logger = structlog.get_logger()


class ProvisioningState(StrEnum):
    VALIDATING = "validating"
    CATALOG_RESERVED = "catalog-reserved"
    RESOURCE_CREATING = "resource-creating"
    RESOURCE_READY = "resource-ready"
    MIGRATING = "migrating"
    SEEDING = "seeding"
    TOKEN_ISSUED = "token-issued"
    COMPLETED = "completed"
    ROLLING_BACK = "rolling-back"
    ABORTED = "aborted"


Compensation = Callable[[], Awaitable[object]]


@dataclass
class ProvisioningRun:
    """State of a single saga run.

    Each request gets its own run, so concurrent provisioning of
    different slugs shares nothing mutable.
    """

    workspace_id: UUID
    slug: str
    state: ProvisioningState = ProvisioningState.VALIDATING
    resource_id: str | None = None
    compensations: list[tuple[str, Compensation]] = field(default_factory=list)

    def advance(self, state: ProvisioningState) -> None:
        logger.debug(
            "workspace_provisioning_state",
            workspace_id=str(self.workspace_id),
            slug=self.slug,
            previous=self.state.value,
            state=state.value,
        )
        self.state = state

    def add_compensation(self, name: str, action: Compensation) -> None:
        self.compensations.append((name, action))


@dataclass(frozen=True)
class ProvisioningResult:
    workspace_id: UUID
    slug: str
    redirect_url: str


class ProvisioningOrchestrator:
    """Runs the provisioning saga and its rollback."""

    def __init__(
        self,
        workspace_repo: WorkspaceRepository,
        verification: VerificationService,
        neon: NeonClient,
        bootstrapper: TenantBootstrapper,
        slug_registry: SlugRegistry | None = None,
        base_domain: str | None = None,
        url_scheme: str | None = None,
        post_login_path: str | None = None,
    ) -> None:
        self.workspace_repo = workspace_repo
        self.verification = verification
        self.neon = neon
        self.bootstrapper = bootstrapper
        self.slug_registry = slug_registry or SlugRegistry(workspace_repo)
        self.base_domain = base_domain or settings.tenant_base_domain
        self.url_scheme = url_scheme or settings.tenant_url_scheme
        self.post_login_path = post_login_path or settings.post_login_path

    def primary_domain(self, slug: str) -> str:
        return f"{slug}.{self.base_domain}"

    def build_redirect_url(self, slug: str, one_time_token: str) -> str:
        """URL that redeems the one-time token on the tenant's own domain."""
        query = urlencode(
            {"token": one_time_token, "callbackURL": self.post_login_path},
            safe="/",
        )
        return (
            f"{self.url_scheme}://{self.primary_domain(slug)}"
            f"/api/auth/one-time-token/verify?{query}"
        )

    async def create_workspace(
        self,
        email: str,
        name: str,
        slug: str,
        verification_token: str,
    ) -> ProvisioningResult:
        """Provision a workspace end to end.

        Args:
            email: Verified owner email
            name: Workspace display name, also used as the owner's name
            slug: Requested slug
            verification_token: Provisioning token from code verification

        Returns:
            Workspace id, slug and the post-login redirect URL

        Raises:
            InvalidTokenError: If the provisioning token is not valid or
                another run already claimed it
            SlugTakenError: If the slug is unusable or lost a race
            ProvisioningFailedError: If the database could not be created
            ProvisioningTimeoutError: If the database never became reachable
            MigrationFailedError: If the schema could not be applied
            SeedFailedError: If the initial rows could not be written
        """
        email = normalize_email(email)
        name = name.strip()
        run = ProvisioningRun(workspace_id=uuid4(), slug=slug)

        token_record = await self.verification.validate_provisioning_token(
            email, verification_token
        )
        availability = await self.slug_registry.check_availability(slug)
        if not availability.available:
            raise SlugTakenError(availability.reason, details={"slug": slug})

        await self.verification.claim_provisioning_token(token_record)
        run.add_compensation(
            "provisioning_token",
            lambda: self.verification.release_provisioning_token(token_record),
        )

        logger.info(
            "workspace_provisioning_started",
            workspace_id=str(run.workspace_id),
            slug=slug,
            email=email,
        )

        try:
            one_time_token = await self._provision(run, email, name)
        except AppException as exc:
            await self._roll_back(run, exc)
            raise
        except asyncio.CancelledError as exc:
            await self._roll_back(run, exc)
            raise
        except Exception as exc:
            failed_state = run.state
            await self._roll_back(run, exc)
            raise ProvisioningFailedError(details={"failed_state": failed_state.value}) from exc

        logger.info(
            "workspace_provisioning_completed",
            workspace_id=str(run.workspace_id),
            slug=slug,
            resource_id=run.resource_id,
        )

        return ProvisioningResult(
            workspace_id=run.workspace_id,
            slug=slug,
            redirect_url=self.build_redirect_url(slug, one_time_token),
        )

    async def _provision(self, run: ProvisioningRun, email: str, name: str) -> str:
        """Steps from catalog-reserved to completed. Returns the one-time token."""
        workspace_id = run.workspace_id

        # Registered before the insert so a partial insert is still cleaned
        # up; deleting by our own id never touches another request's row.
        run.add_compensation("catalog_row", lambda: self.workspace_repo.delete(workspace_id))
        try:
            await self.workspace_repo.create(
                workspace_id=workspace_id,
                name=name,
                slug=run.slug,
                region=settings.neon_default_region,
            )
        except IntegrityError as exc:
            raise SlugTakenError(details={"slug": run.slug}) from exc
        run.advance(ProvisioningState.CATALOG_RESERVED)

        run.advance(ProvisioningState.RESOURCE_CREATING)
        database = await self.neon.create_database(run.slug, settings.neon_default_region)
        resource_id = database.resource_id
        run.resource_id = resource_id
        run.add_compensation(
            "external_resource", lambda: self.neon.delete_database(resource_id)
        )
        await self.workspace_repo.attach_resource(
            workspace_id,
            external_resource_id=resource_id,
            primary_domain=self.primary_domain(run.slug),
        )
        await self.neon.wait_until_ready(database.connection_uri)
        run.advance(ProvisioningState.RESOURCE_READY)

        run.advance(ProvisioningState.MIGRATING)
        await self.bootstrapper.run_migrations(database.connection_uri)

        run.advance(ProvisioningState.SEEDING)
        user_id = await self.bootstrapper.seed_initial_data(
            database.connection_uri,
            TenantSeed(
                workspace_id=workspace_id,
                name=name,
                slug=run.slug,
                owner_email=email,
                owner_name=name,
            ),
        )

        one_time_token = await self.bootstrapper.issue_one_time_token(
            database.connection_uri, user_id
        )
        run.advance(ProvisioningState.TOKEN_ISSUED)

        await self.workspace_repo.mark_completed(workspace_id)
        run.advance(ProvisioningState.COMPLETED)
        return one_time_token

    async def _roll_back(self, run: ProvisioningRun, error: BaseException) -> None:
        """Run compensations newest first. Never raises."""
        failed_state = run.state
        run.advance(ProvisioningState.ROLLING_BACK)
        logger.warning(
            "workspace_rollback_started",
            workspace_id=str(run.workspace_id),
            slug=run.slug,
            failed_state=failed_state.value,
            error=repr(error),
        )

        for name, action in reversed(run.compensations):
            try:
                await action()
            except Exception as exc:
                logger.error(
                    f"workspace_rollback_{name}_failed",
                    workspace_id=str(run.workspace_id),
                    resource_id=run.resource_id,
                    error=str(exc),
                )

        run.advance(ProvisioningState.ABORTED)
        logger.info(
            "workspace_rollback_completed",
            workspace_id=str(run.workspace_id),
            slug=run.slug,
        )


def get_provisioning_orchestrator(
    workspace_repo: WorkspaceRepo,
    verification: VerificationSvc,
    neon: NeonClientDep,
    bootstrapper: Annotated[TenantBootstrapper, Depends(get_tenant_bootstrapper)],
) -> ProvisioningOrchestrator:
    """Dependency that provides a ProvisioningOrchestrator."""
    return ProvisioningOrchestrator(
        workspace_repo=workspace_repo,
        verification=verification,
        neon=neon,
        bootstrapper=bootstrapper,
    )


ProvisioningOrchestratorDep = Annotated[
    ProvisioningOrchestrator, Depends(get_provisioning_orchestrator)
]
