from __future__ import annotations

import json

import pytest

from src.treasury.core.models.balances import BalanceData
from src.treasury.core.models.enums import SnapshotKind
from src.treasury.data.storage.postgres.storage import PostgreSQLSnapshotStore
from tests.fakes import FakePool, wallets

COLS = ["id", "snapshot_type", "swap_id", "swap_type", "ts", "balances"]


def test_insert_serialises_balances_and_commits(t0):
    pool = FakePool([(["id"], [(7,)])])
    store = PostgreSQLSnapshotStore(pool)
    data = wallets(("BTC", "lnd", 100, 5))

    snap = store.add_snapshot(SnapshotKind.SWAP, t0, data, swap_id="s1", swap_type="Reverse")

    query, params = pool.executed[0]
    assert query.startswith("INSERT INTO balance_snapshots")
    assert "%(balances)s::jsonb" in query
    assert params["snapshot_type"] == "swap"
    assert params["ts"] == t0
    assert json.loads(params["balances"]) == data.to_dict()
    assert pool.commits == 1
    assert snap.id == 7 and snap.swap_id == "s1"


def test_invalid_swap_fields_never_reach_the_database(t0):
    pool = FakePool()
    store = PostgreSQLSnapshotStore(pool)

    with pytest.raises(ValueError):
        store.add_snapshot(SnapshotKind.PERIODIC, t0, BalanceData(), swap_id="s1", swap_type="Chain")

    assert pool.executed == []


def test_legacy_row_without_type_reads_as_swap(t0):
    payload = json.dumps({"wallets": [{"symbol": "BTC", "service": "lnd", "confirmed": 1, "unconfirmed": 0}]})
    pool = FakePool([(COLS, [(3, None, "old", "Chain", t0, payload)])])
    store = PostgreSQLSnapshotStore(pool)

    snap = store.get_by_swap_id("old")

    assert snap.snapshot_kind == SnapshotKind.SWAP
    assert snap.balances.wallets[0].confirmed == 1
    assert snap.balances.lightning == ()
    query, params = pool.executed[0]
    assert "ORDER BY ts DESC, id DESC LIMIT 1" in query
    assert params == {"swap_id": "old"}


def test_kind_filter_treats_null_as_swap(t0):
    pool = FakePool([(COLS, [])])
    store = PostgreSQLSnapshotStore(pool)

    assert store.get_by_time_range(t0, t0, SnapshotKind.SWAP) == []

    query, params = pool.executed[0]
    assert "COALESCE(snapshot_type, 'swap') = %(kind)s" in query
    assert "ORDER BY ts ASC, id ASC" in query
    assert params == {"start": t0, "end": t0, "kind": "swap"}


def test_latest_without_kind_has_no_filter():
    pool = FakePool([(COLS, [])])
    store = PostgreSQLSnapshotStore(pool)

    assert store.get_latest() is None

    query, params = pool.executed[0]
    assert "COALESCE" not in query
    assert params == {}


def test_page_reports_total(t0):
    rows = [
        (5, "periodic", None, None, t0, {"wallets": [], "lightning": []}),
        (4, "periodic", None, None, t0, {"wallets": [], "lightning": []}),
    ]
    pool = FakePool([(["count"], [(9,)]), (COLS, rows)])
    store = PostgreSQLSnapshotStore(pool)

    page, total = store.get_snapshots(2, 4, SnapshotKind.PERIODIC)

    assert total == 9
    assert [s.id for s in page] == [5, 4]
    (count_q, count_p), (page_q, page_p) = pool.executed
    assert count_q.startswith("SELECT COUNT(*) FROM balance_snapshots")
    assert count_p == {"kind": "periodic"}
    assert "LIMIT %(limit)s OFFSET %(offset)s" in page_q
    assert page_p == {"kind": "periodic", "limit": 2, "offset": 4}
