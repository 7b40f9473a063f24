"""
Stat snapshots: the shaped, tagged record sent downstream.

The Docker stats body is large and version-dependent. We pass the interesting
sections through untouched and attach tags describing which container the
sample belongs to, so the sink never needs to know the runtime's format.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dockwatch.watchlist import MonitoredContainer


# Docker stats body key → snapshot attribute
_SECTIONS = {
    "networks": "network",
    "blkio_stats": "block_io",
    "cpu_stats": "cpu",
    "memory_stats": "memory",
    "pids_stats": "process_count",
}


@dataclass
class StatSnapshot:
    """One normalized stats sample for one container."""

    timestamp: str
    tags: dict[str, str] = field(default_factory=dict)
    network: dict[str, Any] = field(default_factory=dict)
    block_io: dict[str, Any] = field(default_factory=dict)
    cpu: dict[str, Any] = field(default_factory=dict)
    memory: dict[str, Any] = field(default_factory=dict)
    process_count: dict[str, Any] = field(default_factory=dict)

    def read_at(self) -> datetime | None:
        """Parse the runtime read time. Docker emits nanosecond precision."""
        text = self.timestamp.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        # Trim fractional seconds to microseconds for fromisoformat
        if "." in text:
            head, _, rest = text.partition(".")
            digits = ""
            for ch in rest:
                if not ch.isdigit():
                    break
                digits += ch
            text = f"{head}.{digits[:6].ljust(6, '0')}{rest[len(digits):]}"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    def to_payload(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "tags": dict(self.tags),
            "network": self.network,
            "blockIO": self.block_io,
            "cpu": self.cpu,
            "memory": self.memory,
            "processCount": self.process_count,
        }


def is_stats_body(raw: Any) -> bool:
    """True when a runtime response looks like a stats sample.

    Error bodies ({"message": "No such container: ..."}) and anything that is
    not a mapping with a read time count as "container vanished".
    """
    if not isinstance(raw, dict):
        return False
    if "message" in raw and "read" not in raw:
        return False
    return isinstance(raw.get("read"), str)


def normalize_stats(raw: dict[str, Any], container: MonitoredContainer) -> StatSnapshot:
    """Shape a raw stats body into a StatSnapshot tagged with *container*."""
    tags: dict[str, str] = {}

    labels = raw.get("labels")
    if isinstance(labels, dict):
        tags.update({str(k): str(v) for k, v in labels.items()})
    if raw.get("id"):
        tags["container_id"] = str(raw["id"])

    # Container-derived tags win over anything the runtime reported
    tags["name"] = container.display_name
    tags["group"] = container.group_label or ""

    sections = {}
    for source_key, attr in _SECTIONS.items():
        value = raw.get(source_key)
        sections[attr] = value if isinstance(value, dict) else {}

    return StatSnapshot(timestamp=raw["read"], tags=tags, **sections)
