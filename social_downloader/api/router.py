"""Aggregate all API routers."""

from fastapi import APIRouter
from social_downloader.api.health import router as health_router
from social_downloader.api.downloads import router as downloads_router

api_router = APIRouter(prefix="/api")
api_router.include_router(health_router, tags=["health"])
api_router.include_router(downloads_router, tags=["downloads"])
