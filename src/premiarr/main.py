"""FastAPI status app that hosts the Premiarr daemon."""

from __future__ import annotations

from fastapi import FastAPI

from premiarr import __version__
from premiarr.api.v1 import system_router
from premiarr.core.settings import get_settings
from premiarr.runtime import PremiarrRuntime

APP_VERSION = __version__

# Initialize FastAPI app
app = FastAPI(
    title="Premiarr API",
    description="New-release announcements with one-tap Jellyseerr requests",
    version=APP_VERSION,
)

# Include API routers
app.include_router(system_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    runtime = PremiarrRuntime(get_settings())
    app.state.runtime = runtime
    try:
        await runtime.start()
    except Exception:
        await runtime.stop()
        app.state.runtime = None
        raise


@app.on_event("shutdown")
async def on_shutdown() -> None:
    runtime: PremiarrRuntime | None = getattr(app.state, "runtime", None)
    if runtime:
        await runtime.stop()
        app.state.runtime = None


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "Premiarr API",
        "version": APP_VERSION,
        "description": "New-release announcements with one-tap Jellyseerr requests",
        "docs": "/docs",
    }
