import threading
from typing import Dict, List, Optional

import structlog

from orderflow.jobs.processor import Handler
from orderflow.jobs.queue import Job, JobQueue

logger = structlog.get_logger(__name__)


class FulfillmentWorker:
    """Pool of threads pulling jobs from one queue and dispatching by job name."""

    def __init__(self, queue: JobQueue, handlers: Dict[str, Handler],
                 concurrency: int = 1, poll_timeout: float = 1.0):
        self._queue = queue
        self._handlers = handlers
        self._concurrency = concurrency
        self._poll_timeout = poll_timeout
        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []

    # Lifecycle hooks only log; they never affect control flow

    def on_active(self, job: Job) -> None:
        logger.debug("Job is now active", job_id=job.id, job_name=job.name)

    def on_completed(self, job: Job, result) -> None:
        logger.info("Job completed", job_id=job.id, job_name=job.name, result=result)

    def on_failed(self, job: Job, error: BaseException, will_retry: bool) -> None:
        logger.error("Job failed", job_id=job.id, job_name=job.name, error=str(error),
                     attempts_made=job.attempts_made, will_retry=will_retry)

    def run_once(self, timeout: Optional[float] = None) -> bool:
        """Process at most one job. Returns False when nothing was ready."""
        job = self._queue.reserve(self._poll_timeout if timeout is None else timeout)
        if job is None:
            return False
        self.on_active(job)
        handler = self._handlers.get(job.name)
        try:
            if handler is None:
                raise LookupError(f"No handler registered for job '{job.name}'")
            result = handler(job, lambda pct: self._queue.report_progress(job, pct))
        except Exception as exc:
            will_retry = self._queue.fail(job, str(exc) or exc.__class__.__name__)
            self.on_failed(job, exc, will_retry)
            return True
        self._queue.complete(job, result)
        self.on_completed(job, result)
        return True

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception:
                # Queue backend errors (e.g. Redis down) must not kill the thread
                logger.exception("Worker loop error", queue=self._queue.name)
                self._stop.wait(self._poll_timeout)

    def start(self) -> None:
        if any(t.is_alive() for t in self._threads):
            return
        self._stop.clear()
        self._threads = [
            threading.Thread(target=self._run, name=f"{self._queue.name}-worker-{i}", daemon=True)
            for i in range(self._concurrency)
        ]
        for t in self._threads:
            t.start()
        logger.info("Worker started", queue=self._queue.name, concurrency=self._concurrency)

    def stop(self, join: bool = True, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if join:
            for t in self._threads:
                t.join(timeout)
