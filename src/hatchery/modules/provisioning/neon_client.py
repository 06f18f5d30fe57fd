"""Client for the managed Postgres provider (Neon projects API).

Each workspace gets its own provider project. Creating one is retried
on transient failures; deleting one is best-effort because it only runs
while a failed saga is rolling back.
"""

import asyncio
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Annotated, Any

import httpx
import structlog
from fastapi import Depends

from hatchery.config import settings
from hatchery.core.database import probe_connection
from hatchery.core.errors import ProvisioningFailedError, ProvisioningTimeoutError


logger = structlog.get_logger()


TRANSIENT_STATUS_CODES = frozenset({429})

# Failures raised before the request left this process. Anything later may
# have created the project already, so a create is never retried after it.
CONNECT_PHASE_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout)


@dataclass(frozen=True)
class ProvisionedDatabase:
    """A freshly created provider project."""

    resource_id: str
    connection_uri: str


class TransientProviderError(Exception):
    """A provider failure worth retrying (rate limit, 5xx, no connection)."""


def is_transient_status(status_code: int) -> bool:
    return status_code in TRANSIENT_STATUS_CODES or status_code >= 500


class NeonClient:
    """Creates, deletes and waits on tenant databases.

    ``sleep``, ``probe`` and ``clock`` are injectable so retry and
    readiness timing can be driven without real waits.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_attempts: int | None = None,
        backoff_base: float | None = None,
        backoff_cap: float | None = None,
        poll_interval: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        probe: Callable[[str], Awaitable[None]] = probe_connection,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.neon_api_key
        self.base_url = (base_url or settings.neon_api_base_url).rstrip("/")
        self.timeout = timeout or settings.neon_request_timeout_seconds
        self.max_attempts = max_attempts or settings.provisioning_max_attempts
        self.backoff_base = (
            backoff_base if backoff_base is not None else settings.provisioning_backoff_base_seconds
        )
        self.backoff_cap = (
            backoff_cap if backoff_cap is not None else settings.provisioning_backoff_cap_seconds
        )
        self.poll_interval = poll_interval or settings.readiness_poll_interval_seconds
        self.transport = transport
        self._sleep = sleep
        self._probe = probe
        self._clock = clock

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Accept": "application/json",
            },
            timeout=self.timeout,
            transport=self.transport,
        )

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retrying after the given zero-based attempt.

        Exponential from ``backoff_base`` with up to one base unit of
        jitter, capped at ``backoff_cap``.
        """
        delay = self.backoff_base * (2**attempt) + random.random() * self.backoff_base
        return min(delay, self.backoff_cap)

    async def _create_once(self, name: str, region: str) -> ProvisionedDatabase:
        async with self._client() as client:
            try:
                response = await client.post(
                    "/projects",
                    json={"project": {"name": name, "region_id": region}},
                )
            except CONNECT_PHASE_ERRORS as exc:
                raise TransientProviderError(str(exc)) from exc
            except httpx.TransportError as exc:
                logger.warning("neon_create_outcome_unknown", name=name, error=str(exc))
                await self._remove_projects_named(client, name)
                raise ProvisioningFailedError(
                    details={"name": name, "reason": "request_outcome_unknown"},
                ) from exc

        if is_transient_status(response.status_code):
            raise TransientProviderError(f"provider returned {response.status_code}")
        if response.is_error:
            raise ProvisioningFailedError(
                details={"provider_status": response.status_code},
            )

        payload = response.json()
        connection_uris = payload.get("connection_uris") or []
        connection_uri = connection_uris[0].get("connection_uri") if connection_uris else None
        if not connection_uri:
            raise ProvisioningFailedError("No connection URI returned by the database provider")

        return ProvisionedDatabase(
            resource_id=payload["project"]["id"],
            connection_uri=connection_uri,
        )

    async def _remove_projects_named(self, client: httpx.AsyncClient, name: str) -> int:
        """Delete projects a create with an unknown outcome may have left.

        The name is the workspace slug, which the catalog row reserved, so
        a project carrying it belongs to this run or to an earlier orphan.
        """
        try:
            response = await client.get("/projects", params={"search": name})
            response.raise_for_status()
            projects = response.json().get("projects") or []
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("neon_project_lookup_failed", name=name, error=str(exc))
            return 0

        removed = 0
        for project in projects:
            if project.get("name") == name and await self.delete_database(project["id"]):
                removed += 1
        return removed

    async def create_database(self, name: str, region: str | None = None) -> ProvisionedDatabase:
        """Create a provider project, retrying transient failures.

        Args:
            name: Project name, usually the workspace slug
            region: Provider region id, defaults to the configured region

        Returns:
            The project id and its connection string

        Raises:
            ProvisioningFailedError: On a non-transient failure, when the
                request was lost after being sent, or once every attempt
                has failed transiently
        """
        if not self.api_key:
            raise ProvisioningFailedError("Database provider is not configured")

        region = region or settings.neon_default_region
        last_error: TransientProviderError | None = None

        for attempt in range(self.max_attempts):
            try:
                database = await self._create_once(name, region)
            except TransientProviderError as exc:
                last_error = exc
                logger.warning(
                    "neon_create_transient_failure",
                    name=name,
                    attempt=attempt + 1,
                    max_attempts=self.max_attempts,
                    error=str(exc),
                )
                if attempt < self.max_attempts - 1:
                    await self._sleep(self.backoff_delay(attempt))
                continue

            logger.info(
                "neon_project_created",
                name=name,
                region=region,
                resource_id=database.resource_id,
                attempts=attempt + 1,
            )
            return database

        raise ProvisioningFailedError(
            details={"attempts": self.max_attempts},
        ) from last_error

    async def delete_database(self, resource_id: str) -> bool:
        """Delete a provider project. Never raises.

        Failures are logged; the project is then orphaned until the
        reconciliation job or an operator removes it.

        Returns:
            True if the project is gone, including when it already was
        """
        if not self.api_key:
            return False

        try:
            async with self._client() as client:
                response = await client.delete(f"/projects/{resource_id}")
                if response.status_code != 404:
                    response.raise_for_status()
        except Exception as exc:
            logger.error(
                "neon_project_delete_failed",
                resource_id=resource_id,
                error=str(exc),
            )
            return False

        logger.info("neon_project_deleted", resource_id=resource_id)
        return True

    async def wait_until_ready(self, connection_uri: str, timeout: float | None = None) -> None:
        """Poll a new database with ``SELECT 1`` until it answers.

        A probe still running at the deadline is cancelled.

        Args:
            connection_uri: Connection string from ``create_database``
            timeout: Seconds to keep trying, defaults to the configured value

        Raises:
            ProvisioningTimeoutError: If the database is still unreachable
                when the timeout elapses
        """
        timeout = timeout if timeout is not None else settings.readiness_timeout_seconds
        deadline = self._clock() + timeout
        attempts = 0

        while True:
            attempts += 1
            try:
                # A probe that hangs counts as a failed one once time is up
                async with asyncio.timeout(max(deadline - self._clock(), 0)):
                    await self._probe(connection_uri)
            except Exception as exc:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    raise ProvisioningTimeoutError(
                        details={"timeout_seconds": timeout, "attempts": attempts},
                    ) from exc
                logger.debug("tenant_database_not_ready", attempt=attempts, error=str(exc))
                await self._sleep(min(self.poll_interval, remaining))
                continue

            logger.info("tenant_database_ready", attempts=attempts)
            return


def get_neon_client() -> NeonClient:
    """Dependency that provides a NeonClient."""
    return NeonClient()


NeonClientDep = Annotated[NeonClient, Depends(get_neon_client)]
