import heapq
import threading
import time
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

from orderflow.jobs.queue import Job, JobOptions

logger = structlog.get_logger(__name__)


class MemoryJobQueue:
    """Single-process job queue with the same retry semantics as RedisJobQueue.

    ``clock`` decides when delayed jobs become ready; tests pass a fake one.
    """

    def __init__(self, name: str, default_options: Optional[JobOptions] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.name = name
        self._defaults = default_options or JobOptions()
        self._clock = clock
        self._cond = threading.Condition()
        self._jobs: Dict[str, Job] = {}
        self._waiting: deque = deque()
        self._delayed: List[Tuple[float, str]] = []

    def enqueue(self, job_name: str, data: Dict[str, Any], options: Optional[JobOptions] = None,
                job_id: Optional[str] = None) -> str:
        with self._cond:
            if job_id and job_id in self._jobs:
                logger.info("Duplicate job ignored", queue=self.name, job_id=job_id, job_name=job_name)
                return job_id
            job = Job(
                id=job_id or str(uuid.uuid4()),
                name=job_name,
                queue=self.name,
                data=dict(data),
                options=options or self._defaults,
            )
            self._jobs[job.id] = job
            self._waiting.append(job.id)
            self._cond.notify()
            return job.id

    def _promote_due(self) -> None:
        now = self._clock()
        while self._delayed and self._delayed[0][0] <= now:
            _, job_id = heapq.heappop(self._delayed)
            job = self._jobs.get(job_id)
            if job is not None and job.status == "delayed":
                job.status = "waiting"
                self._waiting.append(job_id)

    def reserve(self, timeout: float = 1.0) -> Optional[Job]:
        deadline = time.monotonic() + timeout
        with self._cond:
            while True:
                self._promote_due()
                while self._waiting:
                    job = self._jobs.get(self._waiting.popleft())
                    if job is None:
                        continue
                    job.status = "active"
                    job.progress = 0
                    job.processed_at = datetime.now(timezone.utc)
                    return job
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                if self._delayed:
                    remaining = min(remaining, max(self._delayed[0][0] - self._clock(), 0.01))
                self._cond.wait(remaining)

    def report_progress(self, job: Job, progress: int) -> None:
        with self._cond:
            job.progress = progress

    def complete(self, job: Job, result: Any = None) -> None:
        with self._cond:
            job.status = "completed"
            job.result = result
            job.finished_at = datetime.now(timezone.utc)
            if job.options.remove_on_complete:
                self._jobs.pop(job.id, None)

    def fail(self, job: Job, reason: str) -> bool:
        with self._cond:
            delay = job.record_failure(reason)
            if delay is None:
                if job.options.remove_on_fail:
                    self._jobs.pop(job.id, None)
                return False
            heapq.heappush(self._delayed, (self._clock() + delay, job.id))
            self._cond.notify()
            return True

    def get(self, job_id: str) -> Optional[Job]:
        with self._cond:
            return self._jobs.get(job_id)

    def failed_jobs(self) -> List[Job]:
        with self._cond:
            return [j for j in self._jobs.values() if j.status == "failed"]
