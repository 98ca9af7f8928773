"""Version 1 API endpoints."""

from .endpoints import system_router

__all__ = ["system_router"]
