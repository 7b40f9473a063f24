"""Tests for the watch-list container."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from dockwatch.stats import StatSnapshot
from dockwatch.watchlist import WatchList
from tests.conftest import make_container


def test_replace_and_lookup():
    wl = WatchList()
    c1, c2 = make_container("c1"), make_container("c2")
    wl.replace([c1, c2])

    assert len(wl) == 2
    assert wl.identities() == {"c1", "c2"}
    assert wl.get("c2") is c2
    assert wl.get("missing") is None


def test_duplicate_identity_rejected():
    wl = WatchList([make_container("c1")])

    with pytest.raises(ValueError):
        wl.replace([make_container("c2"), make_container("c2")])

    # Failed replace leaves the old entries in place
    assert wl.identities() == {"c1"}


def test_snapshot_is_stable_across_replace():
    wl = WatchList([make_container("c1")])
    snap = wl.snapshot()

    wl.replace([make_container("c9")])

    assert [c.identity for c in snap] == ["c1"]
    assert wl.identities() == {"c9"}


def test_record_scan_uses_runtime_time():
    container = make_container("c1")
    wl = WatchList([container])
    snapshot = StatSnapshot(timestamp="2024-05-01T10:00:00Z")

    wl.record_scan(container, snapshot)

    assert container.last_scan_at == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
    assert container.last_scan_content is snapshot


def test_record_scan_falls_back_to_now():
    container = make_container("c1")
    wl = WatchList([container])

    before = datetime.now(timezone.utc)
    wl.record_scan(container, StatSnapshot(timestamp="not a date"))

    assert container.last_scan_at >= before


def test_describe():
    container = make_container("c1", display_name="web", group_label="shop")
    info = container.describe()

    assert info == {
        "identity": "c1",
        "runtime_id": "docker-c1",
        "name": "web",
        "group": "shop",
        "last_scan_at": None,
    }
