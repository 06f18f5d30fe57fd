"""Verification module - sign-up codes and provisioning tokens."""

from hatchery.modules.verification.routes import router


# Module metadata
__module_info__ = {
    "name": "verification",
    "version": "1.0.0",
    "description": "Email verification for workspace sign-up",
    "dependencies": ["catalog"],
}

__all__ = ["router"]
