import threading
import time
from typing import Callable, Optional
from jobguard.utils.logging import get_logger

logger = get_logger("NodeHealth")


class NodeHealth:
    """
    Tracks consecutive socket failures for one cache endpoint.

    After ``max_failures`` failures in a row the node is marked down and
    ``is_down()`` stays True until ``down_retry_delay`` seconds have passed.
    A single success resets the count.
    """
    def __init__(self, name: str, max_failures: int = 5, down_retry_delay: float = 30.0,
                 clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.max_failures = max_failures
        self.down_retry_delay = down_retry_delay
        self._clock = clock
        self._failures = 0
        self._down_until: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def failures(self) -> int:
        return self._failures

    def is_down(self) -> bool:
        with self._lock:
            if self._down_until is None:
                return False
            if self._clock() >= self._down_until:
                # Let the next call try the node again
                self._down_until = None
                self._failures = 0
                logger.info(f"Retrying cache node {self.name}")
                return False
            return True

    def record_success(self) -> None:
        with self._lock:
            self._failures = 0

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1
            if self._failures >= self.max_failures and self._down_until is None:
                self._down_until = self._clock() + self.down_retry_delay
                logger.warning(
                    f"Cache node {self.name} marked down after {self._failures} "
                    f"consecutive failures; retrying in {self.down_retry_delay}s"
                )
