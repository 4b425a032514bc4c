"""
Download job error types.

All errors inherit from DownloadError so callers can catch the family.
"""


class DownloadError(Exception):
    """Base exception for download job failures."""
    pass


class DownloadNotFoundError(DownloadError):
    """Raised when a download id is not in the store."""

    def __init__(self, download_id: str):
        self.download_id = download_id
        super().__init__(f"Download not found: {download_id}")


class InvalidStateTransitionError(DownloadError):
    """Raised when attempting an illegal status transition."""

    def __init__(self, download_id: str, current_state: str, target_state: str):
        self.download_id = download_id
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(
            f"Invalid status transition for download {download_id}: "
            f"{current_state} -> {target_state}"
        )


class JobAlreadyRunningError(DownloadError):
    """Raised when a second worker is requested for an in-flight download."""

    def __init__(self, download_id: str):
        self.download_id = download_id
        super().__init__(f"A worker is already running for download {download_id}")
