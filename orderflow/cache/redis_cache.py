from typing import List, Optional
from redis import Redis

def get_client(url: str) -> Redis:
    return Redis.from_url(url, decode_responses=True)

class RedisCache:
    """Cache backed by Redis string keys with expiry. Supports prefix scans."""

    def __init__(self, client: Redis, scan_count: int = 500):
        self._r = client
        self._scan_count = scan_count

    def get(self, key: str) -> Optional[str]:
        return self._r.get(key)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._r.set(key, value, ex=ttl_seconds)

    def delete(self, *keys: str) -> None:
        if keys:
            self._r.delete(*keys)

    def scan_prefix(self, prefix: str) -> List[str]:
        return list(self._r.scan_iter(match=f"{prefix}*", count=self._scan_count))
