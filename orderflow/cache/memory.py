import threading
import time
from typing import Callable, Dict, List, Optional, Tuple


class MemoryCache:
    """In-process cache with per-key expiry, used for local runs and tests."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._data: Dict[str, Tuple[str, float]] = {}

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= self._clock():
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._data[key] = (value, self._clock() + ttl_seconds)

    def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._data.pop(key, None)

    def scan_prefix(self, prefix: str) -> List[str]:
        now = self._clock()
        with self._lock:
            return [k for k, (_, exp) in self._data.items() if k.startswith(prefix) and exp > now]
