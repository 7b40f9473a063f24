"""
Sink forwarder: fire-and-forget push of stat snapshots to the log collector.
"""

from __future__ import annotations

import logging

import httpx

from dockwatch.core.config import SinkConfig
from dockwatch.stats import StatSnapshot

logger = logging.getLogger(__name__)


class SinkForwarder:
    """Posts one JSON record per snapshot. Never raises."""

    def __init__(
        self,
        sink: SinkConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = sink or SinkConfig()
        self._client = httpx.AsyncClient(timeout=self._config.timeout, transport=transport)

    async def forward(self, snapshot: StatSnapshot) -> bool:
        if not self._config.url:
            logger.debug(f"No sink configured, dropping stats for {snapshot.tags.get('name')}")
            return False

        try:
            resp = await self._client.post(self._config.url, json=snapshot.to_payload())
        except Exception as e:
            logger.warning(
                f"Forward to {self._config.url} failed: {e}",
                extra={"container": snapshot.tags.get("name")},
            )
            return False

        if not resp.is_success:
            logger.warning(
                f"Sink returned {resp.status_code} for {snapshot.tags.get('name')}",
                extra={"container": snapshot.tags.get("name"), "status": resp.status_code},
            )
            return False
        return True

    async def close(self) -> None:
        await self._client.aclose()
