"""
Shared test fixtures.

Provides a deterministic fetcher, a store that records every write, and
an HTTP client wired to a fresh application per test.
"""

import asyncio
import time
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from social_downloader.config import Settings
from social_downloader.fetchers.base import FetchError, MediaFetcher
from social_downloader.fetchers.simulated import build_filename
from social_downloader.jobs.models import Download, DownloadRequest, FetchedFile, Platform
from social_downloader.main import create_app
from social_downloader.storage.download_store import InMemoryDownloadStore


class FakeFetcher(MediaFetcher):
    """Predictable fetcher: always category 'dance', optional failures and delay."""

    def __init__(
        self,
        delay: float = 0.0,
        fail_at: Optional[int] = None,
        failures: Optional[int] = None,
        exc_type: type = FetchError,
    ):
        self.delay = delay
        self.fail_at = fail_at
        self.failures = failures  # None = fail every attempt
        self.exc_type = exc_type
        self.calls: List[int] = []
        self._failed = 0

    async def fetch_one(self, download: Download, index: int) -> FetchedFile:
        self.calls.append(index)
        if self.delay:
            await asyncio.sleep(self.delay)
        if index == self.fail_at and (self.failures is None or self._failed < self.failures):
            self._failed += 1
            raise self.exc_type(f"unit {index} unavailable")
        filename = build_filename(download.value, "dance", index)
        return FetchedFile(
            filename=filename,
            url=f"/downloads/{download.id}/{filename}",
            size="1.0 MB",
            views=1000,
            likes=100,
            comments=10,
            metadata="{}",
        )


class RecordingStore(InMemoryDownloadStore):
    """In-memory store that keeps every version of every download it writes."""

    def __init__(self):
        super().__init__()
        self.history: List[Download] = []

    def _apply(self, download_id, operation, changes):
        super()._apply(download_id, operation, changes)
        current = self.get_download(download_id)
        if current is not None:
            self.history.append(current)


def make_request(**overrides) -> DownloadRequest:
    fields = {
        "platform": Platform.TIKTOK,
        "download_type": "username",
        "value": "@alice",
        "limit": 5,
    }
    fields.update(overrides)
    return DownloadRequest(**fields)


def wait_for_terminal(client: TestClient, download_id: str, timeout: float = 10.0) -> dict:
    """Poll GET /api/downloads/{id} until completed or failed."""
    deadline = time.monotonic() + timeout
    while True:
        body = client.get(f"/api/downloads/{download_id}").json()
        if body["download"]["status"] in ("completed", "failed"):
            return body
        assert time.monotonic() < deadline, f"download {download_id} still {body['download']['status']}"
        time.sleep(0.02)


@pytest.fixture
def test_settings():
    return Settings(
        unit_delay_seconds=0.0,
        fetch_retry_backoff_seconds=0.0,
        storage_backend="memory",
        cleanup_interval_seconds=3600,
    )


@pytest.fixture
def store():
    return InMemoryDownloadStore()


@pytest.fixture
def client(test_settings):
    """Client over the real simulated fetcher with no per-unit delay."""
    with TestClient(create_app(settings=test_settings)) as test_client:
        yield test_client


@pytest.fixture
def slow_client(test_settings):
    """Client whose downloads stay in flight for the whole test."""
    app = create_app(settings=test_settings, fetcher=FakeFetcher(delay=30.0))
    with TestClient(app) as test_client:
        yield test_client
