"""Download job store: interface and in-memory implementation."""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from social_downloader.jobs.models import (
    Download,
    DownloadFile,
    DownloadRequest,
    DownloadStatus,
    FetchedFile,
    compute_progress,
    utcnow,
)
from social_downloader.jobs.state import TERMINAL_STATES, is_terminal

logger = logging.getLogger(__name__)


class DownloadStore(ABC):
    """Keyed storage for download jobs and the files they produce.

    Implementations hold no business rules. Updates that reference an
    unknown download id are ignored and logged.
    """

    @abstractmethod
    def create_download(self, request: DownloadRequest) -> Download:
        ...

    @abstractmethod
    def get_download(self, download_id: str) -> Optional[Download]:
        ...

    @abstractmethod
    def list_downloads(self) -> List[Download]:
        """All downloads, newest first; later inserts win ties."""
        ...

    @abstractmethod
    def update_status(
        self,
        download_id: str,
        status: DownloadStatus,
        progress: Optional[int] = None,
        error: Optional[str] = None,
    ) -> None:
        ...

    @abstractmethod
    def update_result_urls(
        self,
        download_id: str,
        zip_url: Optional[str] = None,
        excel_url: Optional[str] = None,
    ) -> None:
        ...

    @abstractmethod
    def update_progress(self, download_id: str, completed_files: int, total_files: int) -> None:
        ...

    @abstractmethod
    def create_file(self, download_id: str, fetched: FetchedFile) -> DownloadFile:
        ...

    @abstractmethod
    def list_files(self, download_id: str) -> List[DownloadFile]:
        ...

    @abstractmethod
    def delete_download(self, download_id: str) -> bool:
        """Remove a download and its files. Returns False if it did not exist."""
        ...

    @abstractmethod
    def purge_expired(self, older_than: datetime) -> int:
        """Delete finished downloads completed before older_than. Returns count removed."""
        ...


def status_changes(
    status: DownloadStatus,
    progress: Optional[int] = None,
    error: Optional[str] = None,
) -> dict:
    """Field updates implied by moving a download into status."""
    changes = {"status": status}
    if progress is not None:
        changes["progress"] = progress
    if error is not None:
        changes["error"] = error
    if status == DownloadStatus.PROCESSING:
        changes["started_at"] = utcnow()
    elif is_terminal(status):
        changes["completed_at"] = utcnow()
    return changes


def progress_changes(completed_files: int, total_files: int) -> dict:
    if completed_files < 0 or completed_files > total_files:
        raise ValueError(
            f"completed_files must be within 0..{total_files}, got {completed_files}"
        )
    return {
        "completed_files": completed_files,
        "total_files": total_files,
        "progress": compute_progress(completed_files, total_files),
    }


class InMemoryDownloadStore(DownloadStore):
    """Process-local store. State is lost on restart.

    Records are immutable; every update swaps in a new copy under a lock,
    so readers only ever see whole records.
    """

    def __init__(self):
        self._downloads: Dict[str, Download] = {}
        self._files: Dict[str, List[DownloadFile]] = {}
        self._lock = threading.Lock()

    def create_download(self, request: DownloadRequest) -> Download:
        download = Download(
            platform=request.platform,
            download_type=request.download_type,
            value=request.value,
            limit=request.limit,
        )
        with self._lock:
            self._downloads[download.id] = download
            self._files[download.id] = []
        return download

    def get_download(self, download_id: str) -> Optional[Download]:
        return self._downloads.get(download_id)

    def list_downloads(self) -> List[Download]:
        with self._lock:
            downloads = list(self._downloads.values())
        # Reversed first so that, among equal timestamps, later inserts come first
        return sorted(reversed(downloads), key=lambda d: d.created_at, reverse=True)

    def update_status(self, download_id, status, progress=None, error=None) -> None:
        self._apply(download_id, "update_status", status_changes(status, progress, error))

    def update_result_urls(self, download_id, zip_url=None, excel_url=None) -> None:
        changes = {}
        if zip_url:
            changes["zip_url"] = zip_url
        if excel_url:
            changes["excel_url"] = excel_url
        self._apply(download_id, "update_result_urls", changes)

    def update_progress(self, download_id, completed_files, total_files) -> None:
        self._apply(download_id, "update_progress", progress_changes(completed_files, total_files))

    def create_file(self, download_id: str, fetched: FetchedFile) -> DownloadFile:
        file = DownloadFile(download_id=download_id, **fetched.model_dump())
        with self._lock:
            files = self._files.get(download_id)
            if files is None:
                logger.warning("create_file: download %s not found, file %s kept orphaned",
                               download_id, file.filename)
                files = self._files[download_id] = []
            files.append(file)
        return file

    def list_files(self, download_id: str) -> List[DownloadFile]:
        with self._lock:
            return list(self._files.get(download_id, []))

    def delete_download(self, download_id: str) -> bool:
        with self._lock:
            self._files.pop(download_id, None)
            return self._downloads.pop(download_id, None) is not None

    def purge_expired(self, older_than: datetime) -> int:
        with self._lock:
            expired = [
                d.id for d in self._downloads.values()
                if d.status in TERMINAL_STATES
                and (d.completed_at or d.created_at) < older_than
            ]
            for download_id in expired:
                del self._downloads[download_id]
                self._files.pop(download_id, None)
        return len(expired)

    def _apply(self, download_id: str, operation: str, changes: dict) -> None:
        with self._lock:
            current = self._downloads.get(download_id)
            if current is None:
                logger.warning("%s ignored: download %s not found", operation, download_id)
                return
            self._downloads[download_id] = current.model_copy(update=changes)
