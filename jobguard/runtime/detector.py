import asyncio
import threading
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Union
from jobguard.errors import ConfigurationError
from jobguard.runtime.factory import build_atomic_cache_from_settings, validate_cache
from jobguard.runtime.interfaces import AtomicCache, QueueLike
from jobguard.utils.logging import get_logger
from jobguard.utils.metrics import MetricsManager

logger = get_logger("DuplicateDetector")

MARKER = "1"


class DedupeStrategy(str, Enum):
    """What to answer when the cache cannot be reached."""
    STRICT = "strict"    # fail closed: treat as duplicate
    RELAXED = "relaxed"  # fail open: treat as new

    @classmethod
    def parse(cls, value: Union[str, "DedupeStrategy"]) -> "DedupeStrategy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(
                f"Unknown dedupe strategy {value!r}, expected 'strict' or 'relaxed'"
            )


class DuplicateDetector:
    """
    Decides whether a received message was already claimed by another consumer.

    The claim is a single atomic insert-if-absent of the message id into a
    shared cache, with the queue's visibility window as TTL. Whoever inserts
    the key first processes the message; everyone else within the window
    sees a duplicate. The detector holds no lock around the check, so the
    guarantee holds across threads, processes and hosts as long as the
    cache's ``add`` is atomic.

    Attributes:
        cache (AtomicCache): Shared store holding the claim markers.
        dedupe_strategy (DedupeStrategy): Verdict used when the cache fails.
        timeout (int): TTL for queues without a visibility window. Default 0.
    """
    def __init__(self,
                 cache: Optional[AtomicCache] = None,
                 dedupe_strategy: Union[str, DedupeStrategy] = DedupeStrategy.RELAXED,
                 timeout: int = 0,
                 servers: Union[str, Iterable[str], None] = None,
                 backend: Optional[str] = None,
                 metrics: Optional[MetricsManager] = None):
        """
        Initialize the DuplicateDetector.

        Args:
            cache: Injected AtomicCache. Built from ``servers`` when omitted.
            dedupe_strategy: 'strict' or 'relaxed'. Default 'relaxed'.
            timeout: Fallback TTL in seconds. Default 0.
            servers: ``host:port`` entries used when no cache is injected.
            backend: 'valkey', 'redis' or 'memory' when building the cache.
                ``servers`` and ``backend`` cannot be combined with ``cache``.
            metrics: Counters to record verdicts in. Defaults to the
                process-wide MetricsManager.

        Raises:
            ConfigurationError: if no usable cache can be obtained or an
                option is invalid.
        """
        self.dedupe_strategy = DedupeStrategy.parse(dedupe_strategy)

        if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout < 0:
            raise ConfigurationError(f"timeout must be a non-negative integer, got {timeout!r}")
        self.timeout = timeout

        if cache is not None and (servers is not None or backend is not None):
            raise ConfigurationError("servers and backend only apply when no cache is injected")
        if cache is None:
            from jobguard.settings import settings
            cache = build_atomic_cache_from_settings(settings, servers=servers, backend=backend)
        self.cache = validate_cache(cache)

        self.metrics = metrics or MetricsManager()
        self._timeouts: Dict[str, int] = {}
        self._timeouts_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings=None, cache: Optional[AtomicCache] = None) -> "DuplicateDetector":
        """Build a detector from a Settings object (the module default if omitted)."""
        if settings is None:
            from jobguard.settings import settings
        if cache is None:
            cache = build_atomic_cache_from_settings(settings)
        return cls(cache=cache, dedupe_strategy=settings.DEDUPE_STRATEGY,
                   timeout=settings.DEDUPE_TIMEOUT)

    def found_duplicate(self, message: Any) -> bool:
        """
        Claim ``message`` and report whether someone else already had.

        Never raises. A missing message or queue is not a duplicate. Cache
        failures, and messages whose id or queue url cannot be read, are
        logged and answered by the dedupe strategy.

        Returns:
            True if the message should be skipped.
        """
        queue = getattr(message, "queue", None) if message is not None else None
        if queue is None:
            self.metrics.record_check("skipped")
            return False

        message_id = None
        try:
            message_id = str(message.id)
            timeout = self.queue_timeout(queue)
        except Exception as e:
            return self._on_error("Unable to read message id or queue url", message_id, e)

        try:
            duplicate = not self.cache.add(message_id, MARKER, timeout)
        except Exception as e:
            return self._on_error("Error accessing duplicate cache server", message_id, e)

        self.metrics.record_check("duplicate" if duplicate else "unique")
        return duplicate

    async def afound_duplicate(self, message: Any) -> bool:
        """found_duplicate for asyncio loops; the cache call runs in a worker thread."""
        return await asyncio.to_thread(self.found_duplicate, message)

    def queue_timeout(self, queue: QueueLike) -> int:
        """
        TTL for messages of ``queue``, resolved once per queue url.
        Later changes to the queue's visibility window are not picked up.
        """
        url = queue.url
        try:
            return self._timeouts[url]
        except KeyError:
            pass

        visibility_timeout = getattr(queue, "visibility_timeout", None)
        resolved = visibility_timeout if visibility_timeout is not None else self.timeout
        with self._timeouts_lock:
            return self._timeouts.setdefault(url, resolved)

    def _on_error(self, reason: str, message_id: Optional[str], error: Exception) -> bool:
        duplicate = self.dedupe_strategy is DedupeStrategy.STRICT
        assumption = "a duplicate" if duplicate else "not a duplicate"
        logger.error(
            f"{reason}. Assuming message is {assumption}. {error}",
            exc_info=error,
            extra={
                "message_id": message_id,
                "strategy": self.dedupe_strategy.value,
                "verdict": "duplicate" if duplicate else "unique",
            },
        )
        self.metrics.record_cache_error(self.dedupe_strategy.value)
        self.metrics.record_check("duplicate" if duplicate else "unique")
        return duplicate

    def close(self) -> None:
        """Release the cache client's connections."""
        close = getattr(self.cache, "close", None)
        if callable(close):
            close()
