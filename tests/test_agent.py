"""Tests for MonitorAgent wiring and lifecycle."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from dockwatch.agent import MonitorAgent
from dockwatch.collector import Collector
from dockwatch.core.config import DockwatchConfig, ScheduleConfig
from dockwatch.reconciler import Reconciler
from dockwatch.watchlist import WatchList
from tests.conftest import make_desired


def _agent(source, runtime, sink, interval: float = 0.01) -> MonitorAgent:
    watchlist = WatchList()
    return MonitorAgent(
        watchlist=watchlist,
        source=source,
        runtime=runtime,
        sink=sink,
        reconciler=Reconciler(watchlist, source, retry_delay=0.01),
        collector=Collector(watchlist, runtime, sink, interval=interval),
    )


def test_from_config_shares_watchlist():
    cfg = DockwatchConfig(schedule=ScheduleConfig(collect_interval=3.0, retry_delay=1.0))
    agent = MonitorAgent.from_config(cfg)

    assert agent.reconciler.watchlist is agent.watchlist
    assert agent.collector.watchlist is agent.watchlist
    assert agent.collector.interval == 3.0


@pytest.mark.asyncio
async def test_boot_reconcile_then_collect(mock_source, mock_runtime, mock_sink):
    """Start fires the boot reconciliation and the collector picks the result up."""
    mock_source.desired = [make_desired("c1"), make_desired("c2")]
    runtime = mock_runtime
    runtime.close = MagicMock()
    agent = _agent(mock_source, runtime, mock_sink)

    await agent.start()
    await asyncio.sleep(0.1)
    await agent.stop()

    assert agent.watchlist.identities() == {"c1", "c2"}
    assert all(entry.last_scan_content is not None for entry in agent.watchlist)
    assert mock_sink.forward.await_count >= 2

    mock_source.close.assert_awaited_once()
    mock_sink.close.assert_awaited_once()
    runtime.close.assert_called_once()
    assert not agent.collector.running


@pytest.mark.asyncio
async def test_boot_with_source_down_keeps_running(mock_source, mock_runtime, mock_sink):
    mock_source.up = False
    mock_runtime.close = MagicMock()
    agent = _agent(mock_source, mock_runtime, mock_sink)

    await agent.start()
    await asyncio.sleep(0.05)

    assert len(agent.watchlist) == 0
    assert agent.collector.running
    assert mock_source.probe.await_count >= 2

    mock_source.up = True
    mock_source.desired = [make_desired("c1")]
    await asyncio.sleep(0.05)
    await agent.stop()

    assert agent.watchlist.identities() == {"c1"}
