"""
Shared fixtures for dockwatch tests.

Provides in-memory stand-ins for the triplestore, the Docker runtime and the
sink. No real SPARQL endpoint, Docker socket or collector needed.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from dockwatch.sources.sparql import DesiredContainer, SourceUnavailable
from dockwatch.watchlist import MonitoredContainer, WatchList


def make_desired(identity: str, **kwargs) -> DesiredContainer:
    """Create a DesiredContainer with derived defaults."""
    return DesiredContainer(
        identity=identity,
        runtime_id=kwargs.get("runtime_id", f"docker-{identity}"),
        display_name=kwargs.get("display_name", f"name-{identity}"),
        group_label=kwargs.get("group_label"),
    )


def make_container(identity: str, **kwargs) -> MonitoredContainer:
    """Create a MonitoredContainer with derived defaults."""
    return MonitoredContainer(
        identity=identity,
        runtime_id=kwargs.pop("runtime_id", f"docker-{identity}"),
        display_name=kwargs.pop("display_name", f"name-{identity}"),
        **kwargs,
    )


def make_stats_body(container_id: str = "abc", **overrides) -> dict:
    """A trimmed Docker stats body."""
    body = {
        "read": "2024-05-01T10:00:00.123456789Z",
        "preread": "2024-05-01T09:59:59.120000000Z",
        "id": container_id,
        "name": f"/{container_id}",
        "networks": {"eth0": {"rx_bytes": 1024, "tx_bytes": 2048}},
        "blkio_stats": {"io_service_bytes_recursive": []},
        "cpu_stats": {"cpu_usage": {"total_usage": 12345}, "online_cpus": 2},
        "memory_stats": {"usage": 4096, "limit": 1 << 30},
        "pids_stats": {"current": 7},
    }
    body.update(overrides)
    return body


# ── Mock source-of-truth ───────────────────────────────────


class MockSource:
    """
    In-memory stand-in for SparqlClient.

    Tracks calls for assertion. Flip `up` to simulate an unreachable store.
    """

    def __init__(self, desired: list[DesiredContainer] | None = None):
        self.up = True
        self.desired = list(desired or [])
        self.groups: dict[str, str] = {}
        self.endpoint = "http://database:8890/sparql"
        self.probe = AsyncMock(side_effect=self._probe)
        self.query_desired_set = AsyncMock(side_effect=self._query_desired_set)
        self.query_group_label = AsyncMock(side_effect=self._query_group_label)
        self.close = AsyncMock()

    async def _probe(self):
        if not self.up:
            raise SourceUnavailable("connection refused")

    async def _query_desired_set(self):
        if not self.up:
            raise SourceUnavailable("connection refused")
        return list(self.desired)

    async def _query_group_label(self, identity):
        return self.groups.get(identity)


@pytest.fixture
def watchlist():
    return WatchList()


@pytest.fixture
def mock_source():
    return MockSource()


@pytest.fixture
def mock_runtime():
    """Runtime client whose fetch_stats answers a stats body for any id."""
    runtime = MagicMock()
    runtime.fetch_stats = AsyncMock(side_effect=lambda rid: make_stats_body(rid))
    return runtime


@pytest.fixture
def mock_sink():
    sink = MagicMock()
    sink.forward = AsyncMock(return_value=True)
    sink.close = AsyncMock()
    return sink


@pytest.fixture
def client():
    """
    FastAPI TestClient with the monitor agent stubbed out.

    Startup/shutdown run against the stub, so no SPARQL endpoint or Docker is touched.
    """
    from fastapi.testclient import TestClient
    from dockwatch import main

    agent = MagicMock()
    agent.start = AsyncMock()
    agent.stop = AsyncMock()
    agent.reconciler.reconcile = AsyncMock()
    agent.reconciler.retry_pending = False
    agent.watchlist = WatchList()

    with patch.object(main, "agent", agent):
        with TestClient(main.app, raise_server_exceptions=False) as c:
            c.agent = agent
            yield c
