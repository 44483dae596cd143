from jobguard.errors import ConfigurationError, CacheError, CacheTransportError, CacheUnavailableError
from jobguard.models import Message, Queue
from jobguard.runtime.detector import DedupeStrategy, DuplicateDetector
from jobguard.runtime.interfaces import AtomicCache
from jobguard.runtime.memory_cache import InMemoryAtomicCache
from jobguard.settings import settings

__version__ = "0.1.0"

__all__ = [
    "DuplicateDetector",
    "DedupeStrategy",
    "AtomicCache",
    "InMemoryAtomicCache",
    "Message",
    "Queue",
    "ConfigurationError",
    "CacheError",
    "CacheTransportError",
    "CacheUnavailableError",
    "settings",
]
