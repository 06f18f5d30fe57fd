"""Tests for RFC 7807 problem responses."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from hatchery.core.errors import (
    EmailDeliveryError,
    InvalidCodeError,
    InvalidTokenError,
    MigrationFailedError,
    ProvisioningFailedError,
    ProvisioningTimeoutError,
    RateLimitError,
    SeedFailedError,
    SlugTakenError,
    register_exception_handlers,
)


class Payload(BaseModel):
    slug: str


def build_app(exc: Exception) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/boom")
    async def boom() -> None:
        raise exc

    @app.post("/validate")
    async def validate(payload: Payload) -> dict[str, str]:
        return {"slug": payload.slug}

    return app


async def call(app: FastAPI, method: str = "GET", path: str = "/boom", **kwargs):
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as client:
        return await client.request(method, path, **kwargs)


@pytest.mark.parametrize(
    ("exc", "status_code", "code"),
    [
        (InvalidCodeError(), 400, "invalid_code"),
        (InvalidTokenError(), 401, "invalid_token"),
        (SlugTakenError(), 409, "slug_taken"),
        (EmailDeliveryError(), 502, "email_delivery_failed"),
        (ProvisioningFailedError(), 502, "provisioning_failed"),
        (ProvisioningTimeoutError(), 504, "provisioning_timeout"),
        (MigrationFailedError(), 500, "migration_failed"),
        (SeedFailedError(), 500, "seed_failed"),
    ],
)
async def test_domain_errors_map_to_problem_details(exc, status_code: int, code: str):
    response = await call(build_app(exc))

    assert response.status_code == status_code
    assert response.headers["content-type"].startswith("application/json")
    body = response.json()
    assert body["status"] == status_code
    assert body["type"].endswith(f"/errors/{code}")
    assert body["detail"] == exc.message
    assert body["instance"] == "/boom"


async def test_details_are_merged_into_body():
    response = await call(build_app(SlugTakenError("This URL is reserved", details={"slug": "api"})))

    body = response.json()
    assert body["detail"] == "This URL is reserved"
    assert body["slug"] == "api"


async def test_rate_limit_sets_retry_after():
    response = await call(build_app(RateLimitError(details={"retry_after": 120})))

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "120"


async def test_validation_errors_list_fields():
    response = await call(build_app(RuntimeError()), method="POST", path="/validate", json={})

    assert response.status_code == 422
    body = response.json()
    assert body["errors"][0]["field"] == "slug"


async def test_unexpected_errors_are_hidden():
    response = await call(build_app(RuntimeError("database password is hunter2")))

    assert response.status_code == 500
    assert "hunter2" not in response.text
    assert response.json()["detail"] == "An unexpected error occurred"
