import threading
from typing import Any, Dict, Tuple, Type
from jobguard.errors import CacheTransportError, CacheUnavailableError
from jobguard.runtime.health import NodeHealth
from jobguard.runtime.interfaces import AtomicCache

# Operational defaults for concrete clients
SOCKET_TIMEOUT = 2.0
SOCKET_MAX_FAILURES = 5
DOWN_RETRY_DELAY = 30.0


class SetNXAtomicCache(AtomicCache):
    """
    AtomicCache on top of a Redis-protocol client: ``SET key value NX [EX ttl]``.

    Subclasses provide the client and the exception types that count as
    socket failures. Those are re-raised as CacheTransportError and feed the
    health tracker of the node owning the key; while that node is down,
    calls for its keys fail fast with CacheUnavailableError. No retries are
    attempted.
    """
    transport_errors: Tuple[Type[BaseException], ...] = (ConnectionError, TimeoutError)

    def __init__(self, client: Any, name: str, key_prefix: str = "",
                 socket_max_failures: int = SOCKET_MAX_FAILURES,
                 down_retry_delay: float = DOWN_RETRY_DELAY):
        self.client = client
        self.name = name
        self.key_prefix = key_prefix
        self.socket_max_failures = socket_max_failures
        self.down_retry_delay = down_retry_delay
        self._health: Dict[str, NodeHealth] = {}
        self._health_lock = threading.Lock()

    def node_name(self, key: str) -> str:
        """Name of the node holding ``key``. Single-node clients use their own name."""
        return self.name

    def health_for(self, node: str) -> NodeHealth:
        with self._health_lock:
            health = self._health.get(node)
            if health is None:
                health = NodeHealth(node, max_failures=self.socket_max_failures,
                                    down_retry_delay=self.down_retry_delay)
                self._health[node] = health
            return health

    def add(self, key: str, value: str, ttl: int) -> bool:
        full_key = f"{self.key_prefix}{key}"
        health = self.health_for(self.node_name(full_key))
        if health.is_down():
            raise CacheUnavailableError(f"Cache node {health.name} is marked down")

        try:
            if ttl > 0:
                inserted = self.client.set(full_key, value, nx=True, ex=ttl)
            else:
                # 0 keeps the entry until evicted, as memcached does
                inserted = self.client.set(full_key, value, nx=True)
        except self.transport_errors as e:
            health.record_failure()
            raise CacheTransportError(f"{health.name}: {e}") from e

        health.record_success()
        return bool(inserted)

    def close(self) -> None:
        self.client.close()
