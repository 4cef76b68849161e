"""Redis-backed job queue.

Keys for a queue named ``q``::

    jobs:q:job:<id>   JSON job record
    jobs:q:wait       list of ready job ids (LPUSH in, LMOVE out)
    jobs:q:active     list of reserved job ids
    jobs:q:leases     sorted set of reserved job ids scored by lease expiry
    jobs:q:delayed    sorted set of job ids scored by ready time
    jobs:q:failed     set of ids that exhausted their attempts

A reserved job stays on the active list until it is completed or failed.
If its worker dies, the lease runs out and the job goes back to waiting,
so delivery is at-least-once.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from redis import Redis

from orderflow.jobs.queue import Job, JobOptions

logger = structlog.get_logger(__name__)

# KEYS: delayed, wait, leases, active. ARGV: now, lease seconds
_PROMOTE = """
local due = redis.call('ZRANGEBYSCORE', KEYS[1], '-inf', ARGV[1])
for _, id in ipairs(due) do
  redis.call('ZREM', KEYS[1], id)
  redis.call('LPUSH', KEYS[2], id)
end
local expired = redis.call('ZRANGEBYSCORE', KEYS[3], '-inf', ARGV[1])
for _, id in ipairs(expired) do
  redis.call('ZREM', KEYS[3], id)
  redis.call('LREM', KEYS[4], 1, id)
  redis.call('LPUSH', KEYS[2], id)
end
-- A worker that died between LMOVE and its lease write still gets one
for _, id in ipairs(redis.call('LRANGE', KEYS[4], 0, -1)) do
  redis.call('ZADD', KEYS[3], 'NX', tonumber(ARGV[1]) + tonumber(ARGV[2]), id)
end
return {#due, #expired}
"""


class RedisJobQueue:
    def __init__(self, client: Redis, name: str, default_options: Optional[JobOptions] = None,
                 lease_seconds: float = 300.0):
        self._r = client
        self.name = name
        self._defaults = default_options or JobOptions()
        self._lease_seconds = lease_seconds
        base = f"jobs:{name}"
        self._wait_key = f"{base}:wait"
        self._active_key = f"{base}:active"
        self._leases_key = f"{base}:leases"
        self._delayed_key = f"{base}:delayed"
        self._failed_key = f"{base}:failed"
        self._job_prefix = f"{base}:job:"
        self._promote = client.register_script(_PROMOTE)

    def _job_key(self, job_id: str) -> str:
        return self._job_prefix + job_id

    def _save(self, job: Job) -> None:
        self._r.set(self._job_key(job.id), job.model_dump_json())

    def enqueue(self, job_name: str, data: Dict[str, Any], options: Optional[JobOptions] = None,
                job_id: Optional[str] = None) -> str:
        job = Job(
            id=job_id or str(uuid.uuid4()),
            name=job_name,
            queue=self.name,
            data=dict(data),
            options=options or self._defaults,
        )
        # NX makes a caller-supplied id an idempotency key
        if not self._r.set(self._job_key(job.id), job.model_dump_json(), nx=True):
            logger.info("Duplicate job ignored", queue=self.name, job_id=job.id, job_name=job_name)
            return job.id
        self._r.lpush(self._wait_key, job.id)
        return job.id

    def _promote_due(self) -> None:
        keys = [self._delayed_key, self._wait_key, self._leases_key, self._active_key]
        moved = self._promote(keys=keys, args=[time.time(), self._lease_seconds])
        if moved and moved[1]:
            logger.warning("Requeued jobs with expired leases", queue=self.name, count=moved[1])

    def reserve(self, timeout: float = 1.0) -> Optional[Job]:
        self._promote_due()
        if timeout <= 0:
            job_id = self._r.lmove(self._wait_key, self._active_key, src="RIGHT", dest="LEFT")
        else:
            job_id = self._r.blmove(self._wait_key, self._active_key, timeout, src="RIGHT", dest="LEFT")
        if job_id is None:
            return None
        self._r.zadd(self._leases_key, {job_id: time.time() + self._lease_seconds})
        raw = self._r.get(self._job_key(job_id))
        if raw is None:
            self._release(job_id)
            return None
        job = Job.model_validate_json(raw)
        job.status = "active"
        job.progress = 0
        job.processed_at = datetime.now(timezone.utc)
        self._save(job)
        return job

    def _release(self, job_id: str, pipe=None) -> None:
        target = pipe if pipe is not None else self._r
        target.lrem(self._active_key, 1, job_id)
        target.zrem(self._leases_key, job_id)

    def report_progress(self, job: Job, progress: int) -> None:
        job.progress = progress
        self._save(job)

    def complete(self, job: Job, result: Any = None) -> None:
        job.status = "completed"
        job.result = result
        job.finished_at = datetime.now(timezone.utc)
        pipe = self._r.pipeline()
        if job.options.remove_on_complete:
            pipe.delete(self._job_key(job.id))
        else:
            pipe.set(self._job_key(job.id), job.model_dump_json())
        self._release(job.id, pipe)
        pipe.execute()

    def fail(self, job: Job, reason: str) -> bool:
        delay = job.record_failure(reason)
        pipe = self._r.pipeline()
        if delay is None:
            if job.options.remove_on_fail:
                pipe.delete(self._job_key(job.id))
            else:
                pipe.set(self._job_key(job.id), job.model_dump_json())
                pipe.sadd(self._failed_key, job.id)
        else:
            pipe.set(self._job_key(job.id), job.model_dump_json())
            pipe.zadd(self._delayed_key, {job.id: time.time() + delay})
        self._release(job.id, pipe)
        pipe.execute()
        return delay is not None

    def get(self, job_id: str) -> Optional[Job]:
        raw = self._r.get(self._job_key(job_id))
        return Job.model_validate_json(raw) if raw else None

    def failed_jobs(self) -> List[Job]:
        jobs = []
        for job_id in self._r.smembers(self._failed_key):
            job = self.get(job_id)
            if job is not None:
                jobs.append(job)
        return jobs
