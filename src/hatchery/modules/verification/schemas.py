"""Pydantic schemas for sign-up verification."""

from pydantic import BaseModel, EmailStr, Field

from hatchery.core.constants import VERIFICATION_CODE_LENGTH


class SendCodeRequest(BaseModel):
    """Request a verification code for an email."""

    email: EmailStr


class SendCodeResponse(BaseModel):
    success: bool = True


class VerifyCodeRequest(BaseModel):
    """Exchange a code for a provisioning token."""

    email: EmailStr
    code: str = Field(
        ...,
        min_length=VERIFICATION_CODE_LENGTH,
        max_length=VERIFICATION_CODE_LENGTH,
        pattern=r"^\d+$",
        examples=["042917"],
    )


class VerifyCodeResponse(BaseModel):
    """Provisioning token returned for a verified email.

    The token is only good for creating a workspace for the same email.
    """

    success: bool = True
    token: str
