"""Job records and retry policy shared by the job queue backends."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Protocol

from pydantic import BaseModel, Field

JobStatus = Literal["waiting", "active", "delayed", "completed", "failed"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Backoff(BaseModel):
    type: Literal["exponential", "fixed"] = "exponential"
    delay: float = Field(default=2.0, ge=0)

    def delay_for(self, attempts_made: int) -> float:
        """Seconds to wait before the next run, after ``attempts_made`` failures."""
        if self.type == "fixed":
            return self.delay
        return self.delay * (2 ** max(attempts_made - 1, 0))


class JobOptions(BaseModel):
    attempts: int = Field(default=3, ge=1)
    backoff: Backoff = Backoff()
    remove_on_complete: bool = True
    remove_on_fail: bool = False


class Job(BaseModel):
    id: str
    name: str
    queue: str
    data: Dict[str, Any]
    options: JobOptions
    status: JobStatus = "waiting"
    attempts_made: int = 0
    progress: int = 0
    failed_reason: Optional[str] = None
    result: Optional[Any] = None
    created_at: datetime = Field(default_factory=_utcnow)
    processed_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def record_failure(self, reason: str) -> Optional[float]:
        """Count a failed attempt; return the retry delay, or None when exhausted."""
        self.attempts_made += 1
        self.failed_reason = reason
        if self.attempts_made < self.options.attempts:
            self.status = "delayed"
            return self.options.backoff.delay_for(self.attempts_made)
        self.status = "failed"
        self.finished_at = _utcnow()
        return None


class JobQueue(Protocol):
    name: str

    def enqueue(
        self,
        job_name: str,
        data: Dict[str, Any],
        options: Optional[JobOptions] = None,
        job_id: Optional[str] = None,
    ) -> str: ...

    def reserve(self, timeout: float = 1.0) -> Optional[Job]: ...

    def report_progress(self, job: Job, progress: int) -> None: ...

    def complete(self, job: Job, result: Any = None) -> None: ...

    def fail(self, job: Job, reason: str) -> bool: ...

    def get(self, job_id: str) -> Optional[Job]: ...

    def failed_jobs(self) -> List[Job]: ...
