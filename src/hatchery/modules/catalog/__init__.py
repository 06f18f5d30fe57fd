"""Catalog module - workspace, domain and verification records."""

from hatchery.modules.catalog.routes import router


# Module metadata
__module_info__ = {
    "name": "catalog",
    "version": "1.0.0",
    "description": "Cross-tenant workspace catalog",
    "dependencies": [],
}

__all__ = ["router"]
