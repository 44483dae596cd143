from typing import List, Optional, Tuple
import valkey
from valkey.backoff import NoBackoff
from valkey.cluster import ClusterNode, ValkeyCluster
from valkey.exceptions import (
    ClusterDownError, ClusterError, ConnectionError as ValkeyConnectionError,
    TimeoutError as ValkeyTimeoutError, ValkeyClusterException, ValkeyError,
)
from valkey.retry import Retry
from jobguard.errors import ConfigurationError
from jobguard.runtime.set_nx import (
    DOWN_RETRY_DELAY, SOCKET_MAX_FAILURES, SOCKET_TIMEOUT, SetNXAtomicCache,
)


class ValkeyAtomicCache(SetNXAtomicCache):
    """
    Durable duplicate markers backed by Valkey.

    One server uses a plain client, several are treated as cluster startup
    nodes, with node health tracked per shard. Client-side retries are
    disabled so a failing server surfaces on the first attempt.
    """
    transport_errors = (
        ValkeyConnectionError, ValkeyTimeoutError,
        ClusterDownError, ClusterError, ValkeyClusterException,
    )

    def __init__(self, servers: List[Tuple[str, int]], key_prefix: str = "",
                 socket_timeout: float = SOCKET_TIMEOUT,
                 socket_max_failures: int = SOCKET_MAX_FAILURES,
                 down_retry_delay: float = DOWN_RETRY_DELAY,
                 client: Optional[valkey.Valkey] = None):
        name = ",".join(f"{host}:{port}" for host, port in servers)
        if client is None:
            try:
                client = self._build_client(servers, socket_timeout)
            except (ValkeyError, ValkeyClusterException) as e:
                raise ConfigurationError(f"Cannot connect to Valkey at {name}: {e}") from e
        super().__init__(client, name=name, key_prefix=key_prefix,
                         socket_max_failures=socket_max_failures,
                         down_retry_delay=down_retry_delay)

    def node_name(self, key: str) -> str:
        if isinstance(self.client, ValkeyCluster):
            node = self.client.get_node_from_key(key)
            if node is not None:
                return node.name
        return self.name

    @staticmethod
    def _build_client(servers: List[Tuple[str, int]], socket_timeout: float):
        if len(servers) > 1:
            # Connects to the startup nodes right away
            return ValkeyCluster(
                startup_nodes=[ClusterNode(host, port) for host, port in servers],
                socket_timeout=socket_timeout,
                socket_connect_timeout=socket_timeout,
                socket_keepalive=True,
                cluster_error_retry_attempts=0,
                retry=Retry(NoBackoff(), 0),
                decode_responses=True,
            )
        host, port = servers[0]
        return valkey.Valkey(
            host=host,
            port=port,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            socket_keepalive=True,
            retry_on_timeout=False,
            retry=Retry(NoBackoff(), 0),
            decode_responses=True,
        )
