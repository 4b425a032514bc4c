"""Job dispatcher interface."""

from abc import ABC, abstractmethod


class JobDispatcher(ABC):
    """Abstract interface for running download jobs in the background."""

    @abstractmethod
    async def submit(self, job_id: str) -> str:
        """Start processing a job without waiting for it. Returns job_id."""
        ...

    @abstractmethod
    def is_running(self, job_id: str) -> bool:
        """Whether a worker currently owns this job."""
        ...

    @abstractmethod
    def active_count(self) -> int:
        ...

    @abstractmethod
    async def start(self) -> None:
        """Start accepting jobs."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Cancel in-flight jobs and wait for them to wind down."""
        ...
