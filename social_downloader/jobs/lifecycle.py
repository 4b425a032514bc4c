"""Download lifecycle: drives one job from pending to a terminal status.

The controller owns the state machine and the work-unit loop. It asks the
fetcher for one file per unit, stores it, then bumps the progress
counters, strictly in index order.
"""

import asyncio
import logging
import random
from typing import Optional

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from social_downloader.fetchers.base import FetchError, MediaFetcher
from social_downloader.jobs.models import Download, DownloadStatus, FetchedFile
from social_downloader.jobs.state import ensure_transition, is_terminal
from social_downloader.storage.download_store import DownloadStore

logger = logging.getLogger(__name__)


def zip_url_for(download_id: str) -> str:
    return f"/api/downloads/{download_id}/zip"


def excel_url_for(download_id: str) -> str:
    return f"/api/downloads/{download_id}/excel"


class DownloadLifecycle:
    def __init__(
        self,
        store: DownloadStore,
        fetcher: MediaFetcher,
        default_limit: int = 10,
        max_limit: int = 50,
        bulk_min_files: int = 20,
        bulk_max_files: int = 100,
        max_retries: int = 2,
        retry_backoff_seconds: float = 0.5,
        rng: Optional[random.Random] = None,
    ):
        self._store = store
        self._fetcher = fetcher
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._bulk_min = bulk_min_files
        self._bulk_max = bulk_max_files
        self._max_retries = max_retries
        self._backoff = retry_backoff_seconds
        self._rng = rng or random.Random()

    def unit_count(self, download: Download) -> int:
        """Number of files a download will produce.

        Bulk downloads draw from [bulk_min, bulk_max); everything else uses
        the requested limit, capped at max_limit.
        """
        if download.is_bulk:
            return self._rng.randrange(self._bulk_min, self._bulk_max)
        return min(download.limit or self._default_limit, self._max_limit)

    async def run(self, download_id: str) -> None:
        """Process a download to completion. Failures end up in its status."""
        current = self._store.get_download(download_id)
        if current is None:
            logger.warning("Download %s not found, nothing to process", download_id)
            return
        ensure_transition(download_id, current.status, DownloadStatus.PROCESSING)
        self._store.update_status(download_id, DownloadStatus.PROCESSING, progress=0)

        download = self._store.get_download(download_id)
        if download is None:
            return

        total = 0
        completed = 0
        try:
            total = self.unit_count(download)
            self._store.update_progress(download_id, 0, total)
            logger.info("Download %s started: %d file(s) for %s %s '%s'",
                        download_id, total, download.platform.value,
                        download.download_type, download.value)

            for index in range(1, total + 1):
                fetched = await self._fetch_with_retry(download, index)
                self._store.create_file(download_id, fetched)
                completed = index
                self._store.update_progress(download_id, completed, total)

            self._store.update_result_urls(
                download_id,
                zip_url=zip_url_for(download_id),
                excel_url=excel_url_for(download_id),
            )
            if self._finish(download_id, DownloadStatus.COMPLETED, progress=100):
                logger.info("Download %s completed with %d file(s)", download_id, completed)

        except asyncio.CancelledError:
            self._finish(
                download_id,
                DownloadStatus.FAILED,
                error=f"Cancelled before completion ({completed}/{total} files retrieved)",
            )
            raise
        except Exception as exc:
            logger.exception("Download %s failed after %d/%d file(s)", download_id, completed, total)
            outcome = "partial" if completed else "no files"
            self._finish(
                download_id,
                DownloadStatus.FAILED,
                error=f"{type(exc).__name__}: {exc} ({outcome}: {completed}/{total} files retrieved)",
            )

    async def _fetch_with_retry(self, download: Download, index: int) -> FetchedFile:
        """Fetch one unit, retrying FetchError with exponential backoff."""
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(FetchError),
            stop=stop_after_attempt(self._max_retries + 1),
            wait=wait_exponential(multiplier=self._backoff),
            before_sleep=lambda retry_state: logger.warning(
                "Fetch of unit %d for download %s failed (%s), retry %d/%d in %.2fs",
                index, download.id, retry_state.outcome.exception(),
                retry_state.attempt_number, self._max_retries,
                retry_state.next_action.sleep,
            ),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._fetcher.fetch_one(download, index)

    def abandon(self, download_id: str) -> None:
        """Fail a download whose worker was cancelled before it could finish.

        Covers jobs cancelled while still pending, which never reach run().
        Downloads that already reached a terminal status are left alone.
        """
        current = self._store.get_download(download_id)
        if current is None or is_terminal(current.status):
            return
        if current.status is DownloadStatus.PENDING:
            self._store.update_status(download_id, DownloadStatus.PROCESSING, progress=0)
        self._finish(
            download_id,
            DownloadStatus.FAILED,
            error=(f"Cancelled before completion "
                   f"({current.completed_files}/{current.total_files} files retrieved)"),
        )

    def _finish(self, download_id: str, status: DownloadStatus, progress=None, error=None) -> bool:
        current = self._store.get_download(download_id)
        if current is None:
            logger.warning("Download %s disappeared before reaching %s", download_id, status.value)
            return False
        if is_terminal(current.status):
            logger.warning("Download %s already %s, not marking it %s",
                           download_id, current.status.value, status.value)
            return False
        ensure_transition(download_id, current.status, status)
        self._store.update_status(download_id, status, progress=progress, error=error)
        return True
