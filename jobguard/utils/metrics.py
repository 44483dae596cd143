from typing import Any, Dict
from prometheus_client import CollectorRegistry, Counter, generate_latest


class MetricsManager:
    """
    Registry for duplicate-check metrics.

    A singleton with its own CollectorRegistry so several detectors in one
    process (and test runs) share counters instead of re-registering them.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            instance = super(MetricsManager, cls).__new__(cls)
            instance.registry = CollectorRegistry()
            instance.checks = Counter(
                "jobguard_dedupe_checks",
                "Duplicate checks by verdict",
                ["verdict"],
                registry=instance.registry,
            )
            instance.cache_errors = Counter(
                "jobguard_dedupe_cache_errors",
                "Cache failures absorbed by the dedupe strategy",
                ["strategy"],
                registry=instance.registry,
            )
            cls._instance = instance
        return cls._instance

    def record_check(self, verdict: str) -> None:
        self.checks.labels(verdict=verdict).inc()

    def record_cache_error(self, strategy: str) -> None:
        self.cache_errors.labels(strategy=strategy).inc()

    def get_all(self) -> Dict[str, Any]:
        """Current sample values keyed by ``name{label=value}``."""
        res = {}
        for metric in self.registry.collect():
            for sample in metric.samples:
                if not sample.name.endswith("_total"):
                    continue
                labels = ",".join(f"{k}={v}" for k, v in sorted(sample.labels.items()))
                res[f"{sample.name}{{{labels}}}"] = sample.value
        return res

    def exposition(self) -> str:
        """Prometheus text exposition of every jobguard metric."""
        return generate_latest(self.registry).decode("utf-8")
