"""
Background retention sweep.

Every cleanup interval, deletes finished downloads (and their files) that
completed more than the retention window ago. In-flight downloads are
never touched.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Optional

from social_downloader.jobs.models import utcnow
from social_downloader.storage.download_store import DownloadStore

logger = logging.getLogger(__name__)


class RetentionSweeper:
    def __init__(self, store: DownloadStore, retention_hours: int, interval_seconds: int):
        self._store = store
        self._retention = timedelta(hours=retention_hours)
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None

    def sweep(self) -> int:
        """Purge expired downloads once. Returns count removed."""
        removed = self._store.purge_expired(utcnow() - self._retention)
        if removed:
            logger.info("Purged %d expired download(s)", removed)
        return removed

    def start(self) -> None:
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.sweep()
            except Exception:
                # A failed sweep is retried on the next tick
                logger.exception("Retention sweep failed")
