"""Sign-up verification API routes."""

from fastapi import APIRouter, Depends

from hatchery.config import settings
from hatchery.core.rate_limit import RateLimit
from hatchery.modules.verification.schemas import (
    SendCodeRequest,
    SendCodeResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from hatchery.modules.verification.services import VerificationSvc


router = APIRouter(prefix="/get-started", tags=["get-started"])


@router.post(
    "/send-code",
    response_model=SendCodeResponse,
    summary="Send a verification code",
    description="Emails a 6-digit code. Requesting a new code invalidates the previous one.",
    dependencies=[
        Depends(
            RateLimit(
                requests=settings.rate_limit_send_code_requests,
                window=settings.rate_limit_send_code_window,
            )
        )
    ],
)
async def send_code(
    data: SendCodeRequest,
    service: VerificationSvc,
) -> SendCodeResponse:
    """Send a verification code to an email address."""
    await service.send_code(data.email)
    return SendCodeResponse()


@router.post(
    "/verify-code",
    response_model=VerifyCodeResponse,
    summary="Verify a code",
    description="Consumes the code and returns a provisioning token.",
    dependencies=[
        Depends(
            RateLimit(
                requests=settings.rate_limit_verify_code_requests,
                window=settings.rate_limit_verify_code_window,
            )
        )
    ],
)
async def verify_code(
    data: VerifyCodeRequest,
    service: VerificationSvc,
) -> VerifyCodeResponse:
    """Exchange a verification code for a provisioning token."""
    token = await service.verify_code(data.email, data.code)
    return VerifyCodeResponse(token=token)
