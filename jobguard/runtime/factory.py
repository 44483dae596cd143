from typing import Iterable, List, Optional, Tuple, Union
from jobguard.errors import ConfigurationError
from jobguard.runtime.interfaces import AtomicCache
from jobguard.runtime.set_nx import DOWN_RETRY_DELAY, SOCKET_MAX_FAILURES, SOCKET_TIMEOUT

DEFAULT_PORT = 6379
BACKENDS = ("valkey", "redis", "memory")


def parse_servers(servers: Union[str, Iterable[str], None]) -> List[Tuple[str, int]]:
    """
    Parse ``host[:port]`` entries, given as a list or a comma separated string.

    Raises:
        ConfigurationError: if no server is given or an entry is malformed.
    """
    if servers is None:
        raise ConfigurationError("No cache servers configured")
    if isinstance(servers, str):
        servers = servers.split(",")

    parsed = []
    for entry in servers:
        entry = entry.strip()
        if not entry:
            continue
        host, _, port = entry.rpartition(":")
        if not host:
            host, port = port, str(DEFAULT_PORT)
        try:
            parsed.append((host, int(port)))
        except ValueError:
            raise ConfigurationError(f"Invalid cache server entry: {entry!r}")

    if not parsed:
        raise ConfigurationError("No cache servers configured")
    return parsed


def build_atomic_cache(servers: Union[str, Iterable[str], None] = None,
                       backend: str = "valkey",
                       key_prefix: str = "",
                       socket_timeout: float = SOCKET_TIMEOUT,
                       socket_max_failures: int = SOCKET_MAX_FAILURES,
                       down_retry_delay: float = DOWN_RETRY_DELAY) -> AtomicCache:
    """
    Build the AtomicCache for ``backend`` with the fixed operational defaults.

    Raises:
        ConfigurationError: unknown backend, unusable server list, or a
            cluster whose startup nodes cannot be reached.
    """
    backend = (backend or "").lower()
    if backend == "memory":
        from jobguard.runtime.memory_cache import InMemoryAtomicCache
        return InMemoryAtomicCache(key_prefix=key_prefix)

    if backend not in BACKENDS:
        raise ConfigurationError(f"Unknown cache backend {backend!r}, expected one of {BACKENDS}")

    nodes = parse_servers(servers)
    options = dict(
        key_prefix=key_prefix,
        socket_timeout=socket_timeout,
        socket_max_failures=socket_max_failures,
        down_retry_delay=down_retry_delay,
    )
    if backend == "redis":
        from jobguard.runtime.redis_cache import RedisAtomicCache
        return RedisAtomicCache(nodes, **options)

    from jobguard.runtime.valkey_cache import ValkeyAtomicCache
    return ValkeyAtomicCache(nodes, **options)


def validate_cache(cache: Optional[object]) -> AtomicCache:
    """Reject injected objects that cannot act as an AtomicCache."""
    if cache is None or not callable(getattr(cache, "add", None)):
        raise ConfigurationError(f"{cache!r} does not provide an atomic add(key, value, ttl)")
    return cache


def build_atomic_cache_from_settings(settings, servers: Union[str, Iterable[str], None] = None,
                                     backend: Optional[str] = None) -> AtomicCache:
    """build_atomic_cache with options from a Settings object; arguments override it."""
    return build_atomic_cache(
        servers if servers is not None else settings.cache_servers,
        backend=backend or settings.CACHE_BACKEND,
        key_prefix=settings.CACHE_KEY_PREFIX,
        socket_timeout=settings.CACHE_SOCKET_TIMEOUT,
        socket_max_failures=settings.CACHE_SOCKET_MAX_FAILURES,
        down_retry_delay=settings.CACHE_DOWN_RETRY_DELAY,
    )
