"""Shared fixtures.

Unit and API tests run against in-memory fakes of the catalog
repositories, so no database or Redis is needed.
"""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from hatchery.core.rate_limit import RateLimitResult
from hatchery.modules.catalog.services import WorkspaceResolver, get_workspace_resolver
from hatchery.modules.provisioning.services import (
    ProvisioningOrchestrator,
    get_provisioning_orchestrator,
)
from hatchery.modules.provisioning.slugs import SlugRegistry, get_slug_registry
from hatchery.modules.verification.services import (
    VerificationService,
    get_verification_service,
)
from tests.fakes import (
    FakeBootstrapper,
    FakeNeonClient,
    FakeVerificationRepository,
    FakeWorkspaceRepository,
    RecordingEmailSender,
)


BASE_DOMAIN = "hatchery.test"


@pytest.fixture
def workspace_repo() -> FakeWorkspaceRepository:
    return FakeWorkspaceRepository()


@pytest.fixture
def verification_repo() -> FakeVerificationRepository:
    return FakeVerificationRepository()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def neon() -> FakeNeonClient:
    return FakeNeonClient()


@pytest.fixture
def bootstrapper() -> FakeBootstrapper:
    return FakeBootstrapper()


@pytest.fixture
def verification_service(
    verification_repo: FakeVerificationRepository,
    email_sender: RecordingEmailSender,
) -> VerificationService:
    return VerificationService(repo=verification_repo, email_sender=email_sender)


@pytest.fixture
def orchestrator(
    workspace_repo: FakeWorkspaceRepository,
    verification_service: VerificationService,
    neon: FakeNeonClient,
    bootstrapper: FakeBootstrapper,
) -> ProvisioningOrchestrator:
    return ProvisioningOrchestrator(
        workspace_repo=workspace_repo,
        verification=verification_service,
        neon=neon,
        bootstrapper=bootstrapper,
        base_domain=BASE_DOMAIN,
        url_scheme="https",
        post_login_path="/admin",
    )


@pytest.fixture
async def verified_token(verification_service: VerificationService, email_sender) -> str:
    """Provisioning token for a@b.com, obtained through the real code flow."""
    await verification_service.send_code("a@b.com")
    return await verification_service.verify_code("a@b.com", email_sender.last_code("a@b.com"))


@pytest.fixture
def rate_limiter():
    """Rate limiter that allows everything unless a test says otherwise."""
    limiter = MagicMock()
    limiter.is_allowed = AsyncMock(
        return_value=RateLimitResult(allowed=True, limit=5, remaining=4, reset_time=0)
    )
    with patch("hatchery.core.rate_limit.backend.rate_limiter", limiter):
        yield limiter


@pytest.fixture
async def client(
    rate_limiter,
    workspace_repo: FakeWorkspaceRepository,
    verification_service: VerificationService,
    orchestrator: ProvisioningOrchestrator,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the app with every catalog dependency faked."""
    from hatchery.main import app

    app.dependency_overrides[get_verification_service] = lambda: verification_service
    app.dependency_overrides[get_slug_registry] = lambda: SlugRegistry(workspace_repo)
    app.dependency_overrides[get_provisioning_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_workspace_resolver] = lambda: WorkspaceResolver(
        workspace_repo, base_domain=BASE_DOMAIN
    )

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
