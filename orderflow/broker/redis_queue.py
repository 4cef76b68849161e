import json
from typing import Any, Dict
from redis import Redis

class RedisQueueBroker:
    """Broker B: durable named queues kept as Redis lists.

    A message is acknowledged once LPUSH returns; consumers BRPOP from the
    other end, so each queue is FIFO.
    """

    def __init__(self, client: Redis, prefix: str = "rmq"):
        self._r = client
        self._prefix = prefix

    def queue_key(self, queue: str) -> str:
        return f"{self._prefix}:{queue}"

    def emit(self, queue: str, payload: Dict[str, Any]) -> int:
        return self._r.lpush(self.queue_key(queue), json.dumps(payload))
