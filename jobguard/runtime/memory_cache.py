import threading
import time
from typing import Callable, Dict, Optional
from jobguard.runtime.interfaces import AtomicCache


class InMemoryAtomicCache(AtomicCache):
    """
    In-memory AtomicCache for tests and single-process use.
    Atomic within one process only.
    """
    def __init__(self, key_prefix: str = "", clock: Callable[[], float] = time.monotonic):
        self.key_prefix = key_prefix
        self._clock = clock
        # key -> (value, expires_at); expires_at None means no expiry
        self._entries: Dict[str, tuple] = {}
        self._lock = threading.Lock()

    def add(self, key: str, value: str, ttl: int) -> bool:
        key = f"{self.key_prefix}{key}"
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and (entry[1] is None or entry[1] > now):
                return False
            expires_at = now + ttl if ttl > 0 else None
            self._entries[key] = (value, expires_at)
            return True

    def get(self, key: str) -> Optional[str]:
        key = f"{self.key_prefix}{key}"
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry[1] is not None and entry[1] <= self._clock():
                del self._entries[key]
                return None
            return entry[0]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
