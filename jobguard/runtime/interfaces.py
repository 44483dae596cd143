from abc import ABC, abstractmethod
from typing import Any, Optional, Protocol, runtime_checkable


class AtomicCache(ABC):
    """
    Interface for a shared key-value store with an atomic insert-if-absent.

    Every duplicate verdict rests on ``add`` being atomic across all callers,
    in every process and on every host that shares the store.
    """

    @abstractmethod
    def add(self, key: str, value: str, ttl: int) -> bool:
        """
        Store ``key`` only if it does not exist yet.

        Args:
            key: Cache key.
            value: Marker to store.
            ttl: Seconds until the entry expires. 0 means no expiry.

        Returns:
            True if the key was newly inserted, False if it already existed.

        Raises:
            CacheError: on connectivity problems.
        """
        pass

    def close(self) -> None:
        """Release client connections."""
        pass


@runtime_checkable
class QueueLike(Protocol):
    """A queue as seen by the detector: a stable url and a visibility window."""
    url: str
    visibility_timeout: Optional[int]


@runtime_checkable
class MessageLike(Protocol):
    """A received message: an id and the queue it came from, if known."""
    id: Any
    queue: Optional[QueueLike]
