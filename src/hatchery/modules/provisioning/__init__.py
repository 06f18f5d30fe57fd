"""Provisioning module - the workspace creation saga."""

from hatchery.modules.provisioning.routes import router


# Module metadata
__module_info__ = {
    "name": "provisioning",
    "version": "1.0.0",
    "description": "Tenant database provisioning and bootstrap",
    "dependencies": ["catalog", "verification"],
}

__all__ = ["router"]
