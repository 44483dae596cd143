class JobGuardError(Exception):
    """Base class for all jobguard errors."""


class ConfigurationError(JobGuardError):
    """
    Raised at construction time when a detector cannot be wired.

    Fatal: callers are expected to abort startup rather than recover.
    """


class CacheError(JobGuardError):
    """Base class for failures of the atomic cache."""


class CacheTransportError(CacheError):
    """The cache server could not be reached or did not answer in time."""


class CacheUnavailableError(CacheError):
    """The cache node is marked down after repeated socket failures."""
