"""
Watch-list: the containers currently under watch.

Structural changes (which containers are watched) belong to the Reconciler and
happen only through replace(). Scan fields belong to the Collector and change
only through record_scan(). Everything runs on one event loop and replace()
swaps a tuple, so a cycle iterating its snapshot never sees a half-built list.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Iterator

from dockwatch.stats import StatSnapshot


@dataclass(eq=False)
class MonitoredContainer:
    """One container under watch. Identity is the source-of-truth URI."""

    identity: str
    runtime_id: str
    display_name: str
    group_label: str | None = None
    last_scan_at: datetime | None = None
    # Kept for delta computation between scans; not diffed yet
    last_scan_content: StatSnapshot | None = None

    def describe(self) -> dict:
        return {
            "identity": self.identity,
            "runtime_id": self.runtime_id,
            "name": self.display_name,
            "group": self.group_label,
            "last_scan_at": (
                self.last_scan_at.isoformat() if self.last_scan_at else None
            ),
        }


class WatchList:
    """Owned, guarded list of MonitoredContainer entries."""

    def __init__(self, entries: Iterable[MonitoredContainer] = ()) -> None:
        self._entries: tuple[MonitoredContainer, ...] = ()
        self.replace(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[MonitoredContainer]:
        return iter(self._entries)

    def snapshot(self) -> tuple[MonitoredContainer, ...]:
        """Immutable view of the current entries."""
        return self._entries

    def identities(self) -> set[str]:
        return {entry.identity for entry in self._entries}

    def get(self, identity: str) -> MonitoredContainer | None:
        for entry in self._entries:
            if entry.identity == identity:
                return entry
        return None

    def replace(self, entries: Iterable[MonitoredContainer]) -> None:
        """Atomically swap in a new set of entries."""
        new_entries = tuple(entries)
        seen: set[str] = set()
        for entry in new_entries:
            if entry.identity in seen:
                raise ValueError(f"Duplicate identity in watch-list: {entry.identity}")
            seen.add(entry.identity)
        self._entries = new_entries

    def record_scan(self, container: MonitoredContainer, snapshot: StatSnapshot) -> None:
        """Store the latest scan on *container*.

        The entry may have been dropped by a reconciliation since the cycle
        took its snapshot; writing to it is harmless since nothing polls it.
        """
        container.last_scan_at = snapshot.read_at() or datetime.now(timezone.utc)
        container.last_scan_content = snapshot
