"""
Status transition rules for download jobs.

Lifecycle: PENDING -> PROCESSING -> COMPLETED | FAILED

Terminal states are immutable. Polling never moves a job backwards.
"""

from typing import FrozenSet, Set, Tuple

from social_downloader.jobs.errors import InvalidStateTransitionError
from social_downloader.jobs.models import DownloadStatus


TERMINAL_STATES: FrozenSet[DownloadStatus] = frozenset({
    DownloadStatus.COMPLETED,
    DownloadStatus.FAILED,
})

_TRANSITIONS: Set[Tuple[DownloadStatus, DownloadStatus]] = {
    (DownloadStatus.PENDING, DownloadStatus.PROCESSING),
    (DownloadStatus.PROCESSING, DownloadStatus.COMPLETED),
    (DownloadStatus.PROCESSING, DownloadStatus.FAILED),
}


def is_terminal(status: DownloadStatus) -> bool:
    return status in TERMINAL_STATES


def can_transition(current: DownloadStatus, target: DownloadStatus) -> bool:
    return (current, target) in _TRANSITIONS


def ensure_transition(
    download_id: str,
    current: DownloadStatus,
    target: DownloadStatus,
) -> None:
    """Raise InvalidStateTransitionError unless current -> target is legal."""
    if not can_transition(current, target):
        raise InvalidStateTransitionError(download_id, current.value, target.value)
