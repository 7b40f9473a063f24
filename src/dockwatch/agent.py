"""
Monitor agent: wires watch-list, clients, reconciler and collector together.
"""

from __future__ import annotations

import asyncio
import logging

from dockwatch.collector import Collector
from dockwatch.core.config import DockwatchConfig
from dockwatch.reconciler import Reconciler
from dockwatch.runtime.docker_stats import DockerStatsClient
from dockwatch.sink import SinkForwarder
from dockwatch.sources.sparql import SparqlClient
from dockwatch.watchlist import WatchList

logger = logging.getLogger(__name__)


class MonitorAgent:
    def __init__(
        self,
        watchlist: WatchList,
        source: SparqlClient,
        runtime: DockerStatsClient,
        sink: SinkForwarder,
        reconciler: Reconciler,
        collector: Collector,
    ) -> None:
        self.watchlist = watchlist
        self.source = source
        self.runtime = runtime
        self.sink = sink
        self.reconciler = reconciler
        self.collector = collector
        self._boot_task: asyncio.Task | None = None

    @classmethod
    def from_config(cls, cfg: DockwatchConfig) -> MonitorAgent:
        watchlist = WatchList()
        source = SparqlClient(cfg.source)
        runtime = DockerStatsClient(cfg.runtime)
        sink = SinkForwarder(cfg.sink)
        return cls(
            watchlist=watchlist,
            source=source,
            runtime=runtime,
            sink=sink,
            reconciler=Reconciler(
                watchlist,
                source,
                retry_delay=cfg.schedule.retry_delay,
                max_retries=cfg.schedule.max_retries,
            ),
            collector=Collector(
                watchlist,
                runtime,
                sink,
                interval=cfg.schedule.collect_interval,
            ),
        )

    async def start(self) -> None:
        """Fire the boot reconciliation and start the collection timer."""
        self._boot_task = asyncio.create_task(
            self.reconciler.reconcile(), name="dockwatch-boot-reconcile"
        )
        self.collector.start()
        logger.info(
            f"Monitor agent started (source={self.source.endpoint}, "
            f"interval={self.collector.interval}s)"
        )

    async def stop(self) -> None:
        await self.collector.stop()
        if self._boot_task is not None and not self._boot_task.done():
            self._boot_task.cancel()
            try:
                await self._boot_task
            except asyncio.CancelledError:
                pass
        self._boot_task = None
        await self.reconciler.close()
        await self.source.close()
        await self.sink.close()
        self.runtime.close()
        logger.info("Monitor agent stopped")
