"""
Reconciler: keeps the watch-list in line with the source-of-truth.

A pass probes the triplestore, fetches the desired set and swaps in
retained ∪ created. Retained entries are carried over as the same objects so
their scan state survives. Passes are serialized; a trigger that arrives while
a pass is running is satisfied by the next pass to start after it arrived.

Failure policy:
  - Probe or query failure leaves the watch-list untouched and schedules one
    retry after retry_delay. At most one retry is pending at any time.
  - max_retries caps consecutive failed passes (0 = keep trying, which suits
    a sidecar booting next to its database).
  - A group label lookup failing only drops that label, unless the store is
    unreachable altogether.
  - After close() no pass runs and no retry is scheduled.
"""

from __future__ import annotations

import asyncio
import logging

from dockwatch.sources.sparql import DesiredContainer, SourceUnavailable, SparqlClient
from dockwatch.watchlist import MonitoredContainer, WatchList

logger = logging.getLogger(__name__)


class Reconciler:
    """Owns structural changes to the watch-list."""

    def __init__(
        self,
        watchlist: WatchList,
        source: SparqlClient,
        retry_delay: float = 2.5,
        max_retries: int = 0,
    ) -> None:
        self.watchlist = watchlist
        self._source = source
        self._retry_delay = retry_delay
        self._max_retries = max_retries

        self._lock = asyncio.Lock()
        self._passes_started = 0
        self._failures = 0
        self._retry_task: asyncio.Task | None = None
        self._closed = False

    @property
    def retry_pending(self) -> bool:
        return self._retry_task is not None and not self._retry_task.done()

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    async def reconcile(self) -> None:
        """Bring the watch-list in line with the source-of-truth. Never raises."""
        await self._reconcile(is_retry=False)

    async def _reconcile(self, is_retry: bool) -> None:
        ticket = self._passes_started
        async with self._lock:
            if self._closed:
                return
            if self._passes_started > ticket:
                # A pass started after this trigger arrived and has finished
                logger.debug("Reconciliation coalesced into a newer pass")
                return
            self._passes_started += 1
            if not is_retry:
                self._failures = 0

            try:
                await self._run_pass()
            except SourceUnavailable as e:
                self._failures += 1
                self._schedule_retry(e)
            except Exception as e:
                logger.exception(f"Reconciliation failed unexpectedly: {e}")
            else:
                self._failures = 0

    async def _run_pass(self) -> None:
        await self._source.probe()
        desired = await self._source.query_desired_set()

        # First binding wins when the store reports an identity twice
        by_identity: dict[str, DesiredContainer] = {}
        for item in desired:
            by_identity.setdefault(item.identity, item)

        current = self.watchlist.snapshot()
        current_ids = {entry.identity for entry in current}

        retained = [entry for entry in current if entry.identity in by_identity]
        fresh = [item for item in by_identity.values() if item.identity not in current_ids]
        created = await self._create_entries(fresh)

        self.watchlist.replace([*retained, *created])

        dropped = len(current) - len(retained)
        if created or dropped:
            logger.info(
                f"Watch-list reconciled: {len(self.watchlist)} watched "
                f"(+{len(created)} / -{dropped})"
            )

    async def _create_entries(
        self, fresh: list[DesiredContainer]
    ) -> list[MonitoredContainer]:
        labels = await asyncio.gather(
            *(self._group_label(item) for item in fresh), return_exceptions=True
        )
        for label in labels:
            if isinstance(label, SourceUnavailable):
                raise label

        created = []
        for item, label in zip(fresh, labels):
            if isinstance(label, BaseException):
                logger.warning(f"Group lookup for {item.identity} failed: {label}")
                label = None
            created.append(
                MonitoredContainer(
                    identity=item.identity,
                    runtime_id=item.runtime_id,
                    display_name=item.display_name,
                    group_label=label,
                )
            )
        return created

    async def _group_label(self, item: DesiredContainer) -> str | None:
        if item.group_label is not None:
            return item.group_label
        return await self._source.query_group_label(item.identity)

    # ─── Retry ────────────────────────────────────────────────────

    def _schedule_retry(self, error: SourceUnavailable) -> None:
        if self._closed:
            return
        if self._max_retries and self._failures > self._max_retries:
            logger.error(
                f"Source-of-truth still unavailable after {self._failures} attempts, "
                f"giving up until the next trigger: {error}",
                extra={"attempt": self._failures},
            )
            return
        if self.retry_pending:
            return

        logger.warning(
            f"Source-of-truth does not seem to be up yet, retrying in "
            f"{self._retry_delay * 1000:.0f}ms: {error}",
            extra={"attempt": self._failures},
        )
        self._retry_task = asyncio.create_task(
            self._retry_later(), name="dockwatch-reconcile-retry"
        )

    async def _retry_later(self) -> None:
        await asyncio.sleep(self._retry_delay)
        # Let the retry pass schedule its own follow-up
        self._retry_task = None
        await self._reconcile(is_retry=True)

    async def close(self) -> None:
        """Cancel a pending retry and refuse further passes."""
        self._closed = True
        task = self._retry_task
        self._retry_task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
