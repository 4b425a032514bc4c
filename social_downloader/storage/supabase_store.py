"""Supabase-backed download store.

Expects two tables with snake_case columns matching the record fields:

  downloads       (id, platform, download_type, value, limit, status, progress,
                   total_files, completed_files, zip_url, excel_url, error,
                   created_at, started_at, completed_at)
  download_files  (id, download_id -> downloads.id, filename, url, size,
                   views, likes, comments, metadata)

Each update is a single-row UPDATE statement, which Postgres applies
atomically, so pollers never see a half-written record.
"""

import logging
from datetime import datetime
from typing import List, Optional

from supabase import Client

from social_downloader.jobs.models import (
    Download,
    DownloadFile,
    DownloadRequest,
    DownloadStatus,
    FetchedFile,
)
from social_downloader.jobs.state import TERMINAL_STATES
from social_downloader.storage.download_store import (
    DownloadStore,
    progress_changes,
    status_changes,
)

logger = logging.getLogger(__name__)

DOWNLOADS_TABLE = "downloads"
FILES_TABLE = "download_files"


def _to_row(changes: dict) -> dict:
    row = {}
    for key, value in changes.items():
        if isinstance(value, DownloadStatus):
            value = value.value
        elif isinstance(value, datetime):
            value = value.isoformat()
        row[key] = value
    return row


class SupabaseDownloadStore(DownloadStore):
    """Persists downloads in Supabase so they survive restarts."""

    def __init__(self, client: Client):
        self._client = client

    def create_download(self, request: DownloadRequest) -> Download:
        download = Download(
            platform=request.platform,
            download_type=request.download_type,
            value=request.value,
            limit=request.limit,
        )
        self._client.table(DOWNLOADS_TABLE).insert(download.model_dump(mode="json")).execute()
        return download

    def get_download(self, download_id: str) -> Optional[Download]:
        response = (
            self._client.table(DOWNLOADS_TABLE)
            .select("*")
            .eq("id", download_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return Download.model_validate(response.data[0])

    def list_downloads(self) -> List[Download]:
        response = (
            self._client.table(DOWNLOADS_TABLE)
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
        return [Download.model_validate(row) for row in response.data or []]

    def update_status(self, download_id, status, progress=None, error=None) -> None:
        self._update(download_id, "update_status", status_changes(status, progress, error))

    def update_result_urls(self, download_id, zip_url=None, excel_url=None) -> None:
        changes = {}
        if zip_url:
            changes["zip_url"] = zip_url
        if excel_url:
            changes["excel_url"] = excel_url
        if changes:
            self._update(download_id, "update_result_urls", changes)

    def update_progress(self, download_id, completed_files, total_files) -> None:
        self._update(download_id, "update_progress", progress_changes(completed_files, total_files))

    def create_file(self, download_id: str, fetched: FetchedFile) -> DownloadFile:
        file = DownloadFile(download_id=download_id, **fetched.model_dump())
        self._client.table(FILES_TABLE).insert(file.model_dump(mode="json")).execute()
        return file

    def list_files(self, download_id: str) -> List[DownloadFile]:
        response = (
            self._client.table(FILES_TABLE)
            .select("*")
            .eq("download_id", download_id)
            .execute()
        )
        return [DownloadFile.model_validate(row) for row in response.data or []]

    def delete_download(self, download_id: str) -> bool:
        self._client.table(FILES_TABLE).delete().eq("download_id", download_id).execute()
        response = self._client.table(DOWNLOADS_TABLE).delete().eq("id", download_id).execute()
        return bool(response.data)

    def purge_expired(self, older_than: datetime) -> int:
        response = (
            self._client.table(DOWNLOADS_TABLE)
            .select("id")
            .in_("status", [s.value for s in TERMINAL_STATES])
            .lt("completed_at", older_than.isoformat())
            .execute()
        )
        removed = 0
        for row in response.data or []:
            if self.delete_download(row["id"]):
                removed += 1
        return removed

    def _update(self, download_id: str, operation: str, changes: dict) -> None:
        response = (
            self._client.table(DOWNLOADS_TABLE)
            .update(_to_row(changes))
            .eq("id", download_id)
            .execute()
        )
        if not response.data:
            logger.warning("%s ignored: download %s not found", operation, download_id)
