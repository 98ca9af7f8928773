"""API endpoint modules for version 1."""

from .system import router as system_router

__all__ = ["system_router"]
