"""Read-only status queries for polling clients."""

from dataclasses import dataclass
from typing import List

from social_downloader.jobs.errors import DownloadNotFoundError
from social_downloader.jobs.models import Download, DownloadFile
from social_downloader.storage.download_store import DownloadStore


@dataclass(frozen=True)
class DownloadSnapshot:
    """A download and its files as of one read."""
    download: Download
    files: List[DownloadFile]


class StatusQueryService:
    """Reads straight from the store on every call; nothing is cached."""

    def __init__(self, store: DownloadStore):
        self._store = store

    def get_status(self, download_id: str) -> DownloadSnapshot:
        download = self._store.get_download(download_id)
        if download is None:
            raise DownloadNotFoundError(download_id)
        return DownloadSnapshot(download=download, files=self._store.list_files(download_id))

    def list_downloads(self) -> List[Download]:
        return self._store.list_downloads()
