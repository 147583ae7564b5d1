"""
Periodic Scheduler

Each registered job runs in its own asyncio task: run, then wait one
interval, then run again. A tick that raises is recorded on the job and the
loop keeps going. stop() lets in-flight ticks finish and joins every loop.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog

from ..utils.datetime_utils import utcnow

logger = structlog.get_logger(__name__)


class JobState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class ScheduledJob:
    name: str
    interval: timedelta
    func: Callable[[], Awaitable[Any]]
    run_on_start: bool = True
    state: JobState = JobState.IDLE
    last_run_at: Optional[datetime] = None
    last_error: Optional[str] = None
    last_result: Any = None
    run_count: int = 0

    def to_status(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "interval_seconds": self.interval.total_seconds(),
            "state": self.state.value,
            "last_run_at": self.last_run_at,
            "last_error": self.last_error,
            "run_count": self.run_count,
        }


class PeriodicScheduler:
    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock
        self._jobs: Dict[str, ScheduledJob] = {}
        self._run_locks: Dict[str, asyncio.Lock] = {}
        self._tasks: List[asyncio.Task] = []
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def is_running(self) -> bool:
        return bool(self._tasks)

    def register(
        self,
        name: str,
        interval: timedelta,
        func: Callable[[], Awaitable[Any]],
        run_on_start: bool = True,
    ) -> ScheduledJob:
        if name in self._jobs:
            raise ValueError(f"Job {name} is already registered")
        if interval.total_seconds() <= 0:
            raise ValueError("Job interval must be positive")
        if self.is_running:
            raise RuntimeError("Cannot register jobs while the scheduler is running")

        job = ScheduledJob(name=name, interval=interval, func=func, run_on_start=run_on_start)
        self._jobs[name] = job
        self._run_locks[name] = asyncio.Lock()
        return job

    def get_job(self, name: str) -> ScheduledJob:
        try:
            return self._jobs[name]
        except KeyError:
            raise KeyError(f"Unknown job {name}") from None

    async def start(self):
        if self.is_running:
            return

        self._stop_event = asyncio.Event()
        for job in self._jobs.values():
            task = asyncio.create_task(self._loop(job), name=f"scheduler:{job.name}")
            self._tasks.append(task)

        logger.info("scheduler_started", jobs=list(self._jobs))

    async def stop(self):
        """Stop re-arming and wait for every job loop; a tick in progress runs to completion."""
        if not self.is_running:
            return

        self._stop_event.set()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("scheduler_stopped")

    async def run_job_once(self, name: str) -> ScheduledJob:
        job = self.get_job(name)
        await self._run_tick(job)
        return job

    def get_status(self) -> List[Dict[str, Any]]:
        return [job.to_status() for job in self._jobs.values()]

    async def _loop(self, job: ScheduledJob):
        delay = 0.0 if job.run_on_start else job.interval.total_seconds()
        while not self._stop_event.is_set():
            if delay and await self._wait_for_stop(delay):
                break
            await self._run_tick(job)
            delay = job.interval.total_seconds()

    async def _wait_for_stop(self, timeout: float) -> bool:
        """True when stop was requested before the timeout elapsed"""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    async def _run_tick(self, job: ScheduledJob):
        # Manual runs and the loop never overlap for the same job
        async with self._run_locks[job.name]:
            job.state = JobState.RUNNING
            logger.info("job_started", job=job.name)
            try:
                job.last_result = await job.func()
                job.last_error = None
                logger.info("job_finished", job=job.name, result=job.last_result)
            except Exception as e:
                job.last_error = str(e) or e.__class__.__name__
                logger.error("job_failed", job=job.name, error=job.last_error, exc_info=e)
            finally:
                job.state = JobState.IDLE
                job.last_run_at = self.clock()
                job.run_count += 1
