"""Health check endpoint."""

from fastapi import APIRouter, Request
import platform
import sys

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Service health, in-flight downloads, and system info."""
    dispatcher = getattr(request.app.state, "dispatcher", None)
    settings = getattr(request.app.state, "settings", None)
    return {
        "status": "healthy" if dispatcher is not None else "starting",
        "active_downloads": dispatcher.active_count() if dispatcher is not None else 0,
        "storage_backend": settings.storage_backend if settings is not None else None,
        "python_version": sys.version,
        "platform": platform.platform(),
    }
