"""End-to-end tests for the get-started flow over HTTP."""

from urllib.parse import parse_qs, urlparse

import pytest
from httpx import AsyncClient

from hatchery.core.rate_limit import RateLimitResult
from tests.factories.workspace import CreateWorkspaceRequestFactory, SendCodeRequestFactory


pytestmark = pytest.mark.integration

PREFIX = "/api/v1/get-started"


async def obtain_token(client: AsyncClient, email_sender, email: str) -> str:
    response = await client.post(f"{PREFIX}/send-code", json={"email": email})
    assert response.status_code == 200

    response = await client.post(
        f"{PREFIX}/verify-code",
        json={"email": email, "code": email_sender.last_code(email)},
    )
    assert response.status_code == 200
    return response.json()["token"]


class TestSignUpFlow:
    """The whole happy path from email to a resolvable workspace."""

    async def test_create_workspace_end_to_end(
        self, client: AsyncClient, email_sender, neon, bootstrapper
    ):
        payload = CreateWorkspaceRequestFactory.build(slug="acme")
        token = await obtain_token(client, email_sender, payload.email)

        response = await client.get(f"{PREFIX}/slug-availability", params={"slug": "acme"})
        assert response.json() == {"available": True, "reason": None}

        response = await client.post(
            f"{PREFIX}/workspaces",
            json={**payload.model_dump(mode="json"), "verification_token": token},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["slug"] == "acme"

        redirect = urlparse(data["redirect_url"])
        assert redirect.netloc == "acme.hatchery.test"
        assert redirect.path == "/api/auth/one-time-token/verify"
        assert parse_qs(redirect.query)["token"] == [bootstrapper.tokens[0][0]]
        assert len(neon.created) == 1

        response = await client.get(f"{PREFIX}/slug-availability", params={"slug": "acme"})
        assert response.json() == {"available": False, "reason": "This URL is already taken"}

        response = await client.get(
            "/api/v1/workspaces/resolve", params={"host": "ACME.hatchery.test:443"}
        )
        assert response.status_code == 200
        assert response.json()["workspace_id"] == data["workspace_id"]

    async def test_token_cannot_be_reused(self, client: AsyncClient, email_sender):
        payload = CreateWorkspaceRequestFactory.build()
        token = await obtain_token(client, email_sender, payload.email)
        body = {**payload.model_dump(mode="json"), "verification_token": token}

        first = await client.post(f"{PREFIX}/workspaces", json=body)
        second = await client.post(
            f"{PREFIX}/workspaces", json={**body, "slug": f"{payload.slug}-2"}
        )

        assert first.status_code == 201
        assert second.status_code == 401


class TestErrors:
    """Each failure reaches the client as a problem document."""

    async def test_wrong_code(self, client: AsyncClient, email_sender):
        email = SendCodeRequestFactory.build().email
        await client.post(f"{PREFIX}/send-code", json={"email": email})
        wrong = "000000" if email_sender.last_code(email) != "000000" else "111111"

        response = await client.post(
            f"{PREFIX}/verify-code", json={"email": email, "code": wrong}
        )

        assert response.status_code == 400
        assert response.json()["type"].endswith("/errors/invalid_code")

    async def test_invalid_token(self, client: AsyncClient):
        payload = CreateWorkspaceRequestFactory.build()

        response = await client.post(f"{PREFIX}/workspaces", json=payload.model_dump(mode="json"))

        assert response.status_code == 401

    async def test_reserved_slug(self, client: AsyncClient, email_sender, neon):
        payload = CreateWorkspaceRequestFactory.build(slug="admin")
        token = await obtain_token(client, email_sender, payload.email)

        response = await client.post(
            f"{PREFIX}/workspaces",
            json={**payload.model_dump(mode="json"), "verification_token": token},
        )

        assert response.status_code == 409
        assert response.json()["detail"] == "This URL is reserved"
        assert neon.created == []

    async def test_provider_timeout_rolls_back(
        self, client: AsyncClient, email_sender, neon, workspace_repo
    ):
        neon.never_ready()
        payload = CreateWorkspaceRequestFactory.build()
        token = await obtain_token(client, email_sender, payload.email)

        response = await client.post(
            f"{PREFIX}/workspaces",
            json={**payload.model_dump(mode="json"), "verification_token": token},
        )

        assert response.status_code == 504
        assert workspace_repo.workspaces == {}
        assert neon.deleted == [neon.created[0].resource_id]

    async def test_malformed_code_is_rejected(self, client: AsyncClient):
        response = await client.post(
            f"{PREFIX}/verify-code", json={"email": "a@b.com", "code": "12ab56"}
        )

        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "code"

    async def test_short_slug_query(self, client: AsyncClient):
        response = await client.get(f"{PREFIX}/slug-availability", params={"slug": "ab"})

        assert response.status_code == 422

    async def test_unknown_host(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/workspaces/resolve", params={"host": "nobody.hatchery.test"}
        )

        assert response.status_code == 404

    async def test_rate_limited(self, client: AsyncClient, rate_limiter):
        rate_limiter.is_allowed.return_value = RateLimitResult(
            allowed=False, limit=5, remaining=0, reset_time=0, retry_after=42
        )

        response = await client.post(f"{PREFIX}/send-code", json={"email": "a@b.com"})

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "42"
