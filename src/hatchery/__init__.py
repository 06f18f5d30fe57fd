"""Hatchery - workspace sign-up and tenant provisioning service."""

__version__ = "0.1.0"
