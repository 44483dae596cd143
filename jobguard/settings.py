from typing import List
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration for jobguard.

    Every field can be overridden with a ``JOBGUARD_`` prefixed environment
    variable or a ``.env`` file, e.g. ``JOBGUARD_DEDUPE_STRATEGY=strict``.
    """
    model_config = SettingsConfigDict(env_prefix="JOBGUARD_", env_file=".env", extra="ignore")

    DEDUPE_STRATEGY: str = "relaxed"
    DEDUPE_TIMEOUT: int = 0

    CACHE_BACKEND: str = "valkey"
    CACHE_SERVERS: str = "localhost:6379"
    CACHE_KEY_PREFIX: str = ""
    CACHE_SOCKET_TIMEOUT: float = 2.0
    CACHE_SOCKET_MAX_FAILURES: int = 5
    CACHE_DOWN_RETRY_DELAY: float = 30.0

    LOG_FORMAT: str = "text"
    LOG_LEVEL: str = "INFO"

    @field_validator("DEDUPE_STRATEGY", "CACHE_BACKEND", "LOG_FORMAT")
    @classmethod
    def _lowercase(cls, value: str) -> str:
        return value.strip().lower()

    @property
    def cache_servers(self) -> List[str]:
        """CACHE_SERVERS split on commas, blanks dropped."""
        return [s.strip() for s in self.CACHE_SERVERS.split(",") if s.strip()]


settings = Settings()
