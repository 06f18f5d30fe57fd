"""Identity verification for workspace sign-up.

Flow:
1. ``send_code`` stores a 6-digit code under ``workspace-creation:<email>``
   and emails it. Sending again overwrites the record, so only the latest
   code is ever valid.
2. ``verify_code`` consumes the code and stores a longer-lived opaque
   provisioning token under ``verified:<email>``.
3. The provisioning saga validates that token and claims it for the run.
   A run that rolls back releases it again.

The token step lets the client retry slug checks and workspace creation
without having a new code sent.
"""

import hmac
import secrets
from datetime import UTC, datetime, timedelta
from typing import Annotated

import structlog
from fastapi import Depends

from hatchery.config import settings
from hatchery.core.constants import (
    CODE_IDENTIFIER_PREFIX,
    PROVISIONING_TOKEN_BYTES,
    TOKEN_IDENTIFIER_PREFIX,
    VERIFICATION_CODE_LENGTH,
)
from hatchery.core.errors import InvalidCodeError, InvalidTokenError
from hatchery.modules.catalog.models import Verification
from hatchery.modules.catalog.repos import VerificationRepo, VerificationRepository
from hatchery.modules.verification.email import EmailSender, EmailSenderDep


logger = structlog.get_logger()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def code_identifier(email: str) -> str:
    """Identifier of the sign-up code record for an email."""
    return f"{CODE_IDENTIFIER_PREFIX}:{normalize_email(email)}"


def token_identifier(email: str) -> str:
    """Identifier of the provisioning token record for an email."""
    return f"{TOKEN_IDENTIFIER_PREFIX}:{normalize_email(email)}"


def generate_code() -> str:
    """Generate a random zero-padded 6-digit numeric code."""
    return f"{secrets.randbelow(10**VERIFICATION_CODE_LENGTH):0{VERIFICATION_CODE_LENGTH}d}"


def generate_provisioning_token() -> str:
    return secrets.token_urlsafe(PROVISIONING_TOKEN_BYTES)


class VerificationService:
    """Issues and checks sign-up codes and provisioning tokens."""

    def __init__(
        self,
        repo: VerificationRepository,
        email_sender: EmailSender,
        code_ttl: timedelta | None = None,
        token_ttl: timedelta | None = None,
        max_attempts: int | None = None,
    ) -> None:
        self.repo = repo
        self.email_sender = email_sender
        self.code_ttl = code_ttl or timedelta(minutes=settings.verification_code_ttl_minutes)
        self.token_ttl = token_ttl or timedelta(
            minutes=settings.provisioning_token_ttl_minutes
        )
        self.max_attempts = max_attempts or settings.verification_max_attempts

    async def send_code(self, email: str) -> None:
        """Generate a code for an email and send it.

        Any earlier code for the same email stops working.

        Args:
            email: Address to verify

        Raises:
            EmailDeliveryError: If the email could not be sent
        """
        code = generate_code()
        await self.repo.upsert(
            identifier=code_identifier(email),
            value=code,
            expires_at=datetime.now(UTC) + self.code_ttl,
        )
        await self.email_sender.send_verification_code(normalize_email(email), code)

        logger.info("verification_code_sent", email=normalize_email(email))

    async def verify_code(self, email: str, code: str) -> str:
        """Exchange a valid code for a provisioning token.

        The code is single-use. Each wrong guess counts against the
        record, and once ``max_attempts`` is reached the record is
        deleted so a new code must be requested.

        Args:
            email: Address the code was sent to
            code: The 6-digit code

        Returns:
            Opaque provisioning token

        Raises:
            InvalidCodeError: If the code is missing, expired, exhausted or wrong
        """
        identifier = code_identifier(email)
        record = await self.repo.get_active(identifier, datetime.now(UTC))
        if record is None:
            raise InvalidCodeError()

        if not hmac.compare_digest(record.value.encode(), code.strip().encode()):
            attempts = await self.repo.increment_attempts(record.id)
            if attempts >= self.max_attempts:
                await self.repo.delete(record.id)
                logger.warning(
                    "verification_code_attempts_exhausted",
                    email=normalize_email(email),
                    attempts=attempts,
                )
            raise InvalidCodeError()

        # Whoever deletes the record owns the code
        if not await self.repo.delete(record.id):
            raise InvalidCodeError()

        token = generate_provisioning_token()
        await self.repo.upsert(
            identifier=token_identifier(email),
            value=token,
            expires_at=datetime.now(UTC) + self.token_ttl,
        )

        logger.info("verification_code_verified", email=normalize_email(email))
        return token

    async def validate_provisioning_token(self, email: str, token: str) -> Verification:
        """Check a provisioning token without consuming it.

        Returns:
            The token record, to be passed to ``claim_provisioning_token``

        Raises:
            InvalidTokenError: If no unexpired token matches
        """
        record = await self.repo.get_active(token_identifier(email), datetime.now(UTC))
        if record is None or not hmac.compare_digest(record.value.encode(), token.encode()):
            raise InvalidTokenError()
        return record

    async def claim_provisioning_token(self, record: Verification) -> None:
        """Take a validated token for one provisioning run.

        The record is deleted, and only the caller whose delete removed
        it holds the claim. Concurrent runs presenting the same token
        therefore cannot both proceed.

        Raises:
            InvalidTokenError: If another run claimed the token first
        """
        if not await self.repo.delete(record.id):
            raise InvalidTokenError()

    async def release_provisioning_token(self, record: Verification) -> None:
        """Put a claimed token back after its run rolled back."""
        await self.repo.upsert(
            identifier=record.identifier,
            value=record.value,
            expires_at=record.expires_at,
        )


def get_verification_service(
    repo: VerificationRepo, email_sender: EmailSenderDep
) -> VerificationService:
    """Dependency that provides a VerificationService."""
    return VerificationService(repo=repo, email_sender=email_sender)


VerificationSvc = Annotated[VerificationService, Depends(get_verification_service)]
