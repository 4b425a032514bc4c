"""Downloads API: create a download job, poll one, list all."""

import logging

from fastapi import APIRouter, Depends

from social_downloader.api.deps import get_dispatcher, get_status_service, get_store
from social_downloader.api.schemas import (
    CreateDownloadResponse,
    DownloadListResponse,
    DownloadStatusResponse,
)
from social_downloader.jobs.dispatcher import JobDispatcher
from social_downloader.jobs.models import DownloadRequest
from social_downloader.services.status import StatusQueryService
from social_downloader.storage.download_store import DownloadStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/downloads", response_model=CreateDownloadResponse)
async def create_download(
    payload: DownloadRequest,
    store: DownloadStore = Depends(get_store),
    dispatcher: JobDispatcher = Depends(get_dispatcher),
):
    """Create a download job and start it in the background.

    Returns immediately; poll GET /api/downloads/{id} for progress.
    """
    download = store.create_download(payload)
    await dispatcher.submit(download.id)
    logger.info("Accepted download %s (%s/%s)", download.id,
                download.platform.value, download.download_type)
    return CreateDownloadResponse(download_id=download.id)


@router.get("/downloads/{download_id}", response_model=DownloadStatusResponse)
async def get_download(
    download_id: str,
    status_service: StatusQueryService = Depends(get_status_service),
):
    """Current snapshot of a download and the files produced so far."""
    snapshot = status_service.get_status(download_id)
    return DownloadStatusResponse(download=snapshot.download, files=snapshot.files)


@router.get("/downloads", response_model=DownloadListResponse)
async def list_downloads(
    status_service: StatusQueryService = Depends(get_status_service),
):
    return DownloadListResponse(downloads=status_service.list_downloads())
