"""Factories for get-started request payloads."""

from uuid import uuid4

from polyfactory.factories.pydantic_factory import ModelFactory

from hatchery.modules.provisioning.schemas import CreateWorkspaceRequest
from hatchery.modules.verification.schemas import SendCodeRequest


class SendCodeRequestFactory(ModelFactory[SendCodeRequest]):
    """Factory for send-code payloads."""

    __model__ = SendCodeRequest

    @classmethod
    def email(cls) -> str:
        return f"{cls.__faker__.user_name()}-{uuid4().hex[:6]}@acme.io"


class CreateWorkspaceRequestFactory(ModelFactory[CreateWorkspaceRequest]):
    """Factory for workspace creation payloads."""

    __model__ = CreateWorkspaceRequest

    @classmethod
    def email(cls) -> str:
        return f"{cls.__faker__.user_name()}-{uuid4().hex[:6]}@acme.io"

    @classmethod
    def name(cls) -> str:
        """Generate a company name."""
        return cls.__faker__.company()[:100]

    @classmethod
    def slug(cls) -> str:
        """Generate a URL-safe slug that is never reserved."""
        return f"ws-{uuid4().hex[:10]}"

    @classmethod
    def verification_token(cls) -> str:
        return uuid4().hex
