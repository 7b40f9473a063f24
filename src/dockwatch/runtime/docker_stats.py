"""
Docker stats client: one-shot stats samples over the Docker control socket.

The docker SDK is blocking, so every call runs in a worker thread and is
bounded by asyncio.wait_for on top of the SDK's own socket timeout.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import docker
from docker.errors import NotFound

from dockwatch.core.config import RuntimeConfig
from dockwatch.stats import is_stats_body

logger = logging.getLogger(__name__)


class StatsFetchError(Exception):
    """The runtime could not be asked for stats (socket, timeout, API error)."""


class DockerStatsClient:
    """Fetches single stats samples for container ids."""

    def __init__(self, runtime: RuntimeConfig | None = None) -> None:
        self._config = runtime or RuntimeConfig()
        self._docker: docker.DockerClient | None = None

    def _get_docker(self) -> docker.DockerClient:
        if self._docker is None:
            self._docker = docker.DockerClient(
                base_url=self._config.base_url,
                timeout=self._config.timeout,
            )
        return self._docker

    def _read_stats(self, runtime_id: str) -> Any:
        client = self._get_docker()
        # Low-level API: skips the inspect round trip containers.get() does
        return client.api.stats(runtime_id, stream=False)

    async def fetch_stats(self, runtime_id: str) -> dict[str, Any] | None:
        """Return the raw stats body, or None when the runtime doesn't know the id.

        Raises StatsFetchError on transport failures and timeouts.
        """
        try:
            raw = await asyncio.wait_for(
                asyncio.to_thread(self._read_stats, runtime_id),
                timeout=self._config.timeout,
            )
        except NotFound:
            return None
        except asyncio.TimeoutError as e:
            raise StatsFetchError(
                f"Stats for {runtime_id} timed out after {self._config.timeout}s"
            ) from e
        except Exception as e:
            raise StatsFetchError(f"Stats for {runtime_id} failed: {e}") from e

        if not is_stats_body(raw):
            logger.debug(f"Runtime returned a non-stats body for {runtime_id}: {raw!r}")
            return None
        return raw

    def close(self) -> None:
        if self._docker is not None:
            try:
                self._docker.close()
            except Exception as e:
                logger.warning(f"Closing docker client failed: {e}")
            self._docker = None
