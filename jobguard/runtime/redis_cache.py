from typing import List, Optional, Tuple
import redis
from redis.backoff import NoBackoff
from redis.cluster import ClusterNode, RedisCluster
from redis.exceptions import (
    ClusterDownError, ClusterError, ConnectionError as RedisConnectionError,
    RedisClusterException, RedisError, TimeoutError as RedisTimeoutError,
)
from redis.retry import Retry
from jobguard.errors import ConfigurationError
from jobguard.runtime.set_nx import (
    DOWN_RETRY_DELAY, SOCKET_MAX_FAILURES, SOCKET_TIMEOUT, SetNXAtomicCache,
)


class RedisAtomicCache(SetNXAtomicCache):
    """
    Durable duplicate markers backed by Redis.
    Same wiring as the Valkey cache, for deployments still on Redis.
    """
    transport_errors = (
        RedisConnectionError, RedisTimeoutError,
        ClusterDownError, ClusterError, RedisClusterException,
    )

    def __init__(self, servers: List[Tuple[str, int]], key_prefix: str = "",
                 socket_timeout: float = SOCKET_TIMEOUT,
                 socket_max_failures: int = SOCKET_MAX_FAILURES,
                 down_retry_delay: float = DOWN_RETRY_DELAY,
                 client: Optional[redis.Redis] = None):
        name = ",".join(f"{host}:{port}" for host, port in servers)
        if client is None:
            try:
                client = self._build_client(servers, socket_timeout)
            except (RedisError, RedisClusterException) as e:
                raise ConfigurationError(f"Cannot connect to Redis at {name}: {e}") from e
        super().__init__(client, name=name, key_prefix=key_prefix,
                         socket_max_failures=socket_max_failures,
                         down_retry_delay=down_retry_delay)

    def node_name(self, key: str) -> str:
        if isinstance(self.client, RedisCluster):
            node = self.client.get_node_from_key(key)
            if node is not None:
                return node.name
        return self.name

    @staticmethod
    def _build_client(servers: List[Tuple[str, int]], socket_timeout: float):
        if len(servers) > 1:
            return RedisCluster(
                startup_nodes=[ClusterNode(host, port) for host, port in servers],
                socket_timeout=socket_timeout,
                socket_connect_timeout=socket_timeout,
                socket_keepalive=True,
                cluster_error_retry_attempts=0,
                retry=Retry(NoBackoff(), 0),
                decode_responses=True,
            )
        host, port = servers[0]
        return redis.Redis(
            host=host,
            port=port,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            socket_keepalive=True,
            retry_on_timeout=False,
            retry=Retry(NoBackoff(), 0),
            decode_responses=True,
        )
