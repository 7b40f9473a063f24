"""
Collector: periodic stats fan-out across the watch-list.

Every interval the timer dispatches collect_once() as its own task and goes
back to sleep. A slow cycle therefore overlaps the next one instead of pushing
it back; whichever finishes last owns last_scan_content.

Per container, per cycle:
  fetch → (skip on transport error / unknown id) → normalize → record → forward
"""

from __future__ import annotations

import asyncio
import logging
import time

from dockwatch.runtime.docker_stats import DockerStatsClient, StatsFetchError
from dockwatch.sink import SinkForwarder
from dockwatch.stats import normalize_stats
from dockwatch.watchlist import MonitoredContainer, WatchList

logger = logging.getLogger(__name__)


class Collector:
    """Fetches, normalizes and forwards stats for every watched container."""

    def __init__(
        self,
        watchlist: WatchList,
        runtime: DockerStatsClient,
        sink: SinkForwarder,
        interval: float = 10.0,
    ) -> None:
        self.watchlist = watchlist
        self._runtime = runtime
        self._sink = sink
        self.interval = interval

        self._timer: asyncio.Task | None = None
        self._cycles: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def cycles_in_flight(self) -> int:
        return len(self._cycles)

    # ─── One cycle ────────────────────────────────────────────────

    async def collect_once(self) -> None:
        """One collection cycle over a snapshot of the watch-list. Never raises."""
        entries = self.watchlist.snapshot()
        if not entries:
            return

        started = time.monotonic()
        await asyncio.gather(*(self._collect_container(c) for c in entries))
        logger.debug(
            f"Collection cycle over {len(entries)} containers done",
            extra={"duration_ms": round((time.monotonic() - started) * 1000)},
        )

    async def _collect_container(self, container: MonitoredContainer) -> None:
        try:
            await self._collect(container)
        except Exception as e:
            logger.exception(
                f"Stats collection for {container.display_name} failed: {e}",
                extra={"container": container.identity},
            )

    async def _collect(self, container: MonitoredContainer) -> None:
        runtime_id = container.runtime_id
        try:
            raw = await self._runtime.fetch_stats(runtime_id)
        except StatsFetchError as e:
            logger.warning(
                f"Skipping {container.display_name} this cycle: {e}",
                extra={"container": container.identity, "runtime_id": runtime_id},
            )
            return

        if raw is None:
            # Gone or replaced; the next reconciliation decides membership
            logger.debug(
                f"Runtime does not know {runtime_id} ({container.display_name}), skipping",
                extra={"container": container.identity, "runtime_id": runtime_id},
            )
            return

        snapshot = normalize_stats(raw, container)
        self.watchlist.record_scan(container, snapshot)
        await self._sink.forward(snapshot)

    # ─── Timer ────────────────────────────────────────────────────

    def start(self) -> None:
        if self.running:
            return
        self._timer = asyncio.create_task(self._timer_loop(), name="dockwatch-collector")
        logger.info(f"Collector started (interval={self.interval}s)")

    async def _timer_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                cycle = asyncio.create_task(self.collect_once())
                self._cycles.add(cycle)
                cycle.add_done_callback(self._cycles.discard)
            except Exception as e:
                logger.error(f"Collector timer error: {e}")

    async def stop(self) -> None:
        """Stop the timer and cancel cycles still in flight."""
        tasks = list(self._cycles)
        if self._timer is not None:
            tasks.append(self._timer)
        self._timer = None

        for task in tasks:
            if not task.done():
                task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._cycles.clear()
