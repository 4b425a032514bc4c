"""In-process job dispatcher using asyncio tasks.

Each submitted job gets its own task, tracked by job id so shutdown can
cancel it. At most one task exists per job id at any time.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from social_downloader.jobs.dispatcher import JobDispatcher
from social_downloader.jobs.errors import JobAlreadyRunningError

logger = logging.getLogger(__name__)


class InProcessDispatcher(JobDispatcher):
    """Runs jobs concurrently on the current event loop."""

    def __init__(
        self,
        worker_fn: Callable[[str], Awaitable[None]],
        on_cancelled: Optional[Callable[[str], None]] = None,
    ):
        """
        worker_fn: async callable(job_id) that drives the job to a terminal state.
        on_cancelled: called with each job id cancelled at shutdown, after its
            task has wound down. A task cancelled before its first step never
            enters worker_fn, so this is where such jobs get closed out.
        """
        self._worker_fn = worker_fn
        self._on_cancelled = on_cancelled
        self._tasks: Dict[str, asyncio.Task] = {}
        self._running = False

    async def submit(self, job_id: str) -> str:
        if not self._running:
            raise RuntimeError("Dispatcher is not running")
        if self.is_running(job_id):
            raise JobAlreadyRunningError(job_id)
        self._tasks[job_id] = asyncio.create_task(
            self._run(job_id), name=f"download-{job_id}"
        )
        return job_id

    def is_running(self, job_id: str) -> bool:
        return job_id in self._tasks

    def active_count(self) -> int:
        return len(self._tasks)

    async def join(self, job_id: str) -> None:
        """Wait for a job's worker to finish, if it has one.

        Not used by the HTTP layer, which only polls; callers that need to
        block on a job (tests, scripts) use this instead of sleeping.
        """
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        self._running = False
        cancelled = dict(self._tasks)
        for task in cancelled.values():
            task.cancel()
        if cancelled:
            logger.info("Cancelling %d in-flight download(s)", len(cancelled))
            await asyncio.gather(*cancelled.values(), return_exceptions=True)
        # tasks cancelled before their first step never reach _run's finally
        self._tasks.clear()

        if self._on_cancelled is None:
            return
        for job_id in cancelled:
            try:
                self._on_cancelled(job_id)
            except Exception:
                logger.exception("Could not close out cancelled job %s", job_id)

    async def _run(self, job_id: str) -> None:
        try:
            await self._worker_fn(job_id)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Worker for job %s crashed", job_id)
        finally:
            self._tasks.pop(job_id, None)
