"""FastAPI dependencies resolving collaborators wired up during lifespan."""

from fastapi import HTTPException, Request

from social_downloader.jobs.dispatcher import JobDispatcher
from social_downloader.services.status import StatusQueryService
from social_downloader.storage.download_store import DownloadStore


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=503, detail=f"{name} not initialized")
    return value


def get_store(request: Request) -> DownloadStore:
    return _state(request, "store")


def get_dispatcher(request: Request) -> JobDispatcher:
    return _state(request, "dispatcher")


def get_status_service(request: Request) -> StatusQueryService:
    return _state(request, "status_service")
