"""Bounded background execution for ingestion runs.

Uploads and reprocess requests return immediately; the ingestion run is
handed to :class:`BackgroundTaskRunner`, which keeps a strong reference to
every task (so none is garbage-collected mid-run), limits how many run at
once with an ``asyncio.Semaphore``, and logs any exception that escapes a
run instead of letting it vanish with the task.

``drain()`` waits for in-flight work (used by tests and the CLI);
``shutdown()`` cancels whatever is still pending at application exit.
Runs cancelled at shutdown leave their document in ``processing`` and
need a reprocess.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


class BackgroundTaskRunner:
    """Runs coroutine factories as tracked tasks with bounded concurrency.

    Parameters
    ----------
    max_concurrency:
        How many submitted jobs may execute simultaneously.  Jobs beyond
        this wait for a free slot.
    """

    def __init__(self, max_concurrency: int = 4) -> None:
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be positive")
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        """Number of submitted jobs that have not finished."""
        return len(self._tasks)

    def submit(self, job: Callable[[], Awaitable[Any]], name: str | None = None) -> asyncio.Task[Any]:
        """Schedule *job* and return its task without awaiting it.

        *job* is a zero-argument callable returning an awaitable, so the
        coroutine is only created once a concurrency slot is free.
        """

        async def _wrapped() -> Any:
            async with self._semaphore:
                try:
                    return await job()
                except asyncio.CancelledError:
                    _logger.warning("background_job_cancelled", job=name)
                    raise
                except Exception as exc:
                    _logger.error(
                        "background_job_failed",
                        job=name,
                        error=str(exc),
                        error_type=type(exc).__name__,
                    )
                    return None

        task = asyncio.create_task(_wrapped(), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        _logger.debug("background_job_submitted", job=name, pending=len(self._tasks))
        return task

    async def drain(self) -> None:
        """Wait until every submitted job, including ones submitted meanwhile, finishes."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel pending jobs and wait for them to unwind."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            _logger.info("background_runner_shutdown", cancelled=len(tasks))
