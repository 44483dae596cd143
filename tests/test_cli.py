import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner
from valkey.exceptions import ValkeyClusterException

from jobguard.cli import app
from jobguard.settings import settings

runner = CliRunner()


@pytest.fixture(autouse=True)
def memory_backend():
    with patch.object(settings, "CACHE_BACKEND", "memory"), \
         patch("jobguard.cli.setup_logging"):
        yield


def test_check_reports_duplicates():
    result = runner.invoke(app, ["check", "abc123", "def456", "abc123",
                                 "--queue", "orders", "--visibility-timeout", "30"])
    assert result.exit_code == 0
    assert result.output.splitlines() == [
        "abc123: unique",
        "def456: unique",
        "abc123: duplicate",
    ]


def test_check_with_metrics():
    result = runner.invoke(app, ["check", "m1", "--queue", "orders", "--metrics"])
    assert result.exit_code == 0
    assert "m1: unique" in result.output
    assert "jobguard_dedupe_checks_total" in result.output


def test_check_rejects_bad_strategy():
    result = runner.invoke(app, ["check", "abc123", "--queue", "orders", "--strategy", "paranoid"])
    assert result.exit_code == 2
    assert "Configuration error" in result.output


def test_config_prints_settings():
    result = runner.invoke(app, ["config"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["CACHE_BACKEND"] == "memory"
    assert data["DEDUPE_STRATEGY"] == "relaxed"


def test_ping_memory_backend():
    result = runner.invoke(app, ["ping"])
    assert result.exit_code == 0
    assert "Cache reachable" in result.output


def test_ping_unreachable():
    with patch("jobguard.cli.build_atomic_cache_from_settings") as build:
        build.return_value.add.side_effect = ConnectionError("refused")
        result = runner.invoke(app, ["ping"])
    assert result.exit_code == 1
    assert "Cache unreachable" in result.output


def test_unreachable_cluster_exits_with_configuration_error():
    with patch.object(settings, "CACHE_BACKEND", "valkey"), \
         patch.object(settings, "CACHE_SERVERS", "127.0.0.1:1,127.0.0.1:2"), \
         patch("jobguard.runtime.valkey_cache.ValkeyCluster",
               side_effect=ValkeyClusterException("Valkey Cluster cannot be connected")):
        check = runner.invoke(app, ["check", "abc123", "--queue", "orders"])
        ping = runner.invoke(app, ["ping"])

    assert check.exit_code == 2
    assert "Configuration error" in check.output
    assert ping.exit_code == 2
