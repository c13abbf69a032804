"""
Job runner with a per-job re-entrancy guard and timeout.

A job that exceeds its timeout is not cancelled: it keeps running in the
background and the guard stays held until it finishes, so the next scheduled
invocation of the same job is skipped rather than overlapping it.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

import structlog

logger = structlog.get_logger()


class JobOutcome(Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class JobRunner:
    def __init__(self):
        self._running: Dict[str, asyncio.Task] = {}

    def is_running(self, name: str) -> bool:
        return name in self._running

    async def run(
        self,
        name: str,
        factory: Callable[[], Awaitable],
        timeout: Optional[float] = None,
    ) -> JobOutcome:
        if name in self._running:
            logger.info("Job already running, skipping", job=name)
            return JobOutcome.SKIPPED

        task = asyncio.ensure_future(factory())
        self._running[name] = task
        task.add_done_callback(lambda t: self._finished(name, t))

        try:
            await asyncio.wait_for(asyncio.shield(task), timeout)
            return JobOutcome.COMPLETED
        except asyncio.TimeoutError:
            logger.warning("Job timed out, left running in background", job=name, timeout=timeout)
            return JobOutcome.TIMED_OUT
        except Exception as e:
            logger.error("Job failed", job=name, error=str(e))
            return JobOutcome.FAILED

    def _finished(self, name: str, task: asyncio.Task):
        if self._running.get(name) is task:
            del self._running[name]
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.debug("Job finished with error", job=name, error=str(error))

    async def wait(self, name: str):
        """Wait for an in-flight job to finish, used on shutdown"""
        task = self._running.get(name)
        if task is not None:
            await asyncio.wait([task])
