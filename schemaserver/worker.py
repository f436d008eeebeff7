"""
Background drain worker.

Every `drain_interval_seconds` the worker reaps stale running jobs and runs
one queue drain. A failing tick is logged and the loop carries on.
"""

import asyncio
import logging
from typing import Optional

from schemaai.logging import PprintLogger
from schemaai.queue.scheduler import Scheduler

logger = logging.getLogger(__name__)
stats_logger = PprintLogger(logger)

_worker_task: Optional[asyncio.Task] = None
_shutdown: Optional[asyncio.Event] = None


async def drain_once(scheduler: Scheduler) -> None:
    """One worker tick: reap, drain, log the queue stats."""
    scheduler.reap_stale_jobs()
    result = await scheduler.run_queue(scheduler.queue_settings.batch_size)
    if result.processed:
        logger.info("Drain processed %d jobs (%d complete, %d failed)", result.processed, result.completed, result.failed)
        stats_logger.debug(scheduler.stats())


async def _worker_loop(scheduler: Scheduler, interval: float, shutdown: asyncio.Event) -> None:
    while not shutdown.is_set():
        try:
            await drain_once(scheduler)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Drain worker error: %s", e)
        try:
            await asyncio.wait_for(shutdown.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass


async def start_worker(scheduler: Scheduler, interval: Optional[float] = None) -> None:
    """Start the background drain task."""
    global _worker_task, _shutdown
    if _worker_task is not None:
        return
    interval = interval if interval is not None else scheduler.queue_settings.drain_interval_seconds
    _shutdown = asyncio.Event()
    _worker_task = asyncio.create_task(_worker_loop(scheduler, interval, _shutdown))
    logger.info("Started drain worker (every %ss)", interval)


async def stop_worker(timeout: float = 30.0) -> None:
    """
    Stop the drain task.

    The current tick is allowed to finish. If it is still running after
    `timeout` seconds it is cancelled, and any job it had claimed stays
    `running` until the stale-job reaper picks it up.
    """
    global _worker_task, _shutdown
    if _worker_task is None:
        return
    if _shutdown is not None:
        _shutdown.set()
    try:
        await asyncio.wait_for(_worker_task, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Drain worker did not stop within %ss; cancelled it", timeout)
    except asyncio.CancelledError:
        pass
    _worker_task = None
    _shutdown = None
    logger.info("Stopped drain worker")
