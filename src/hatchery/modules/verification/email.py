"""Outbound email for sign-up verification codes.

Delivery itself is a collaborator: in production a Resend-compatible
HTTP API, in development a log line carrying the code.
"""

from typing import Annotated, Protocol

import httpx
import structlog
from fastapi import Depends

from hatchery.config import settings
from hatchery.core.errors import EmailDeliveryError


logger = structlog.get_logger()


class EmailSender(Protocol):
    """Sends verification codes to an address.

    Implementations raise ``EmailDeliveryError`` when the message could
    not be handed off.
    """

    async def send_verification_code(self, to: str, code: str) -> None: ...


def render_verification_email(code: str) -> tuple[str, str]:
    """Build the subject and plain-text body for a code email."""
    subject = f"{code} is your verification code"
    body = (
        f"Your verification code is {code}.\n\n"
        f"It expires in {settings.verification_code_ttl_minutes} minutes. "
        "If you did not try to create a workspace, you can ignore this email."
    )
    return subject, body


class ConsoleEmailSender:
    """Development sender that logs the code instead of emailing it."""

    async def send_verification_code(self, to: str, code: str) -> None:
        logger.info("verification_code_email_logged", to=to, code=code)


class HttpEmailSender:
    """Sends email through a Resend-compatible JSON API."""

    def __init__(
        self,
        api_key: str,
        api_url: str | None = None,
        sender: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url or settings.email_api_url
        self.sender = sender or settings.email_from
        self.transport = transport

    async def send_verification_code(self, to: str, code: str) -> None:
        subject, body = render_verification_email(code)

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=10.0) as client:
                response = await client.post(
                    self.api_url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "from": self.sender,
                        "to": [to],
                        "subject": subject,
                        "text": body,
                    },
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("verification_code_email_failed", to=to, error=str(exc))
            raise EmailDeliveryError(details={"to": to}) from exc

        logger.info("verification_code_email_sent", to=to)


class UnconfiguredEmailSender:
    """Sender for deployed environments without an email API key.

    Every send fails, so the code is neither logged nor reported as sent.
    """

    async def send_verification_code(self, to: str, code: str) -> None:
        logger.error("verification_code_email_unconfigured", environment=settings.environment)
        raise EmailDeliveryError(
            "Email delivery is not configured",
            details={"to": to},
        )


def get_email_sender() -> EmailSender:
    """Dependency that picks the email sender from configuration.

    The console fallback is only used in development.
    """
    if settings.email_api_key:
        return HttpEmailSender(api_key=settings.email_api_key)
    if not settings.is_development:
        return UnconfiguredEmailSender()
    return ConsoleEmailSender()


EmailSenderDep = Annotated[EmailSender, Depends(get_email_sender)]
