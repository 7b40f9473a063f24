"""
Dockwatch Configuration: single source of truth for all settings.

Reads from environment variables with sensible defaults.
No config files, no YAML, no complexity. Just env vars.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class SourceConfig:
    """SPARQL source-of-truth settings."""

    endpoint: str = "http://database:8890/sparql"
    timeout: float = 10.0
    # Label key a container must carry to be monitored
    monitor_label: str = "logging"
    # Label key holding the logical group (compose project)
    group_label: str = "com.docker.compose.project"

    @classmethod
    def from_env(cls) -> SourceConfig:
        return cls(
            endpoint=os.getenv("MU_SPARQL_ENDPOINT", "http://database:8890/sparql"),
            timeout=float(os.getenv("DOCKWATCH_SPARQL_TIMEOUT", "10.0")),
            monitor_label=os.getenv("DOCKWATCH_MONITOR_LABEL", "logging"),
            group_label=os.getenv(
                "DOCKWATCH_GROUP_LABEL", "com.docker.compose.project"
            ),
        )


@dataclass(frozen=True)
class RuntimeConfig:
    """Container runtime (Docker control socket) settings."""

    base_url: str = "unix:///var/run/docker.sock"
    timeout: float = 15.0

    @classmethod
    def from_env(cls) -> RuntimeConfig:
        return cls(
            base_url=os.getenv("DOCKWATCH_DOCKER_URL", "unix:///var/run/docker.sock"),
            timeout=float(os.getenv("DOCKWATCH_STATS_TIMEOUT", "15.0")),
        )


@dataclass(frozen=True)
class SinkConfig:
    """Downstream collector settings. Empty url disables forwarding."""

    url: str = ""
    timeout: float = 5.0

    @classmethod
    def from_env(cls) -> SinkConfig:
        return cls(
            url=os.getenv("DOCKWATCH_SINK_URL", "").strip(),
            timeout=float(os.getenv("DOCKWATCH_SINK_TIMEOUT", "5.0")),
        )


@dataclass(frozen=True)
class ScheduleConfig:
    """Collection period and reconciliation retry policy."""

    collect_interval: float = 10.0
    retry_delay: float = 2.5
    max_retries: int = 0  # consecutive failed passes; 0 = unlimited

    @classmethod
    def from_env(cls) -> ScheduleConfig:
        return cls(
            collect_interval=float(os.getenv("DOCKWATCH_COLLECT_INTERVAL", "10.0")),
            retry_delay=float(os.getenv("DOCKWATCH_RECONCILE_RETRY_DELAY", "2.5")),
            max_retries=int(os.getenv("DOCKWATCH_RECONCILE_MAX_RETRIES", "0")),
        )


@dataclass(frozen=True)
class ServerConfig:
    """Server settings."""

    host: str = "0.0.0.0"
    port: int = 80

    @classmethod
    def from_env(cls) -> ServerConfig:
        return cls(
            host=os.getenv("DOCKWATCH_HOST", "0.0.0.0"),
            port=int(os.getenv("DOCKWATCH_PORT", "80")),
        )


@dataclass(frozen=True)
class DockwatchConfig:
    """Root configuration."""

    source: SourceConfig = field(default_factory=SourceConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    sink: SinkConfig = field(default_factory=SinkConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_env(cls) -> DockwatchConfig:
        return cls(
            source=SourceConfig.from_env(),
            runtime=RuntimeConfig.from_env(),
            sink=SinkConfig.from_env(),
            schedule=ScheduleConfig.from_env(),
            server=ServerConfig.from_env(),
        )


# Singleton, import this wherever you need config
config = DockwatchConfig.from_env()
