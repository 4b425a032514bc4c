"""Fetcher interface: produces one file per work unit of a download."""

from abc import ABC, abstractmethod

from social_downloader.jobs.models import Download, FetchedFile


class FetchError(Exception):
    """A single work unit could not be fetched. Retried by the lifecycle."""
    pass


class MediaFetcher(ABC):
    """Abstract source of media for a download job.

    To plug in a real platform client:
    1. Subclass MediaFetcher
    2. Implement fetch_one() with genuine async I/O
    3. Raise FetchError for failures worth retrying
    4. Pass an instance to create_app(fetcher=...)
    """

    @abstractmethod
    async def fetch_one(self, download: Download, index: int) -> FetchedFile:
        """Fetch work unit `index` (1-based) of `download`."""
        ...
