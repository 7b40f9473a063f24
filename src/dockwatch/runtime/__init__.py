"""Container runtime clients."""

from dockwatch.runtime.docker_stats import DockerStatsClient, StatsFetchError

__all__ = ["DockerStatsClient", "StatsFetchError"]
