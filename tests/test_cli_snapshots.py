from __future__ import annotations

from datetime import timedelta

import pytest

from src.treasury.cli.snapshots import build_parser, run_query
from src.treasury.core.models.balances import BalanceData
from src.treasury.core.models.enums import SnapshotKind


@pytest.fixture
def filled(store, t0):
    store.add_snapshot(SnapshotKind.PERIODIC, t0, BalanceData())
    store.add_snapshot(SnapshotKind.SWAP, t0 + timedelta(minutes=1), BalanceData(), swap_id="abc", swap_type="Chain")
    store.add_snapshot(SnapshotKind.PERIODIC, t0 + timedelta(minutes=2), BalanceData())
    return store


def _run(store, *argv):
    return run_query(store, build_parser().parse_args(list(argv)))


def test_latest(filled):
    assert _run(filled, "latest")["snapshot"]["id"] == 3
    assert _run(filled, "latest", "--kind", "swap")["snapshot"]["swap_id"] == "abc"


def test_swap_lookup(filled):
    assert _run(filled, "swap", "abc")["snapshot"]["swap_type"] == "Chain"
    assert _run(filled, "swap", "zzz") == {"snapshot": None}


def test_range_naive_times_are_utc(filled):
    out = _run(filled, "range", "2024-05-01T12:00:00", "2024-05-01T12:01:00")

    assert [s["id"] for s in out["snapshots"]] == [1, 2]


def test_range_rejects_inverted_bounds(filled):
    with pytest.raises(SystemExit):
        _run(filled, "range", "2024-05-02T00:00:00", "2024-05-01T00:00:00")


def test_list_page(filled):
    out = _run(filled, "list", "--limit", "1", "--kind", "periodic")

    assert out["total"] == 2
    assert [s["id"] for s in out["snapshots"]] == [3]
