# src/treasury/data/storage/postgres/storage.py
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from psycopg_pool import ConnectionPool

from src.treasury.core.models.balances import BalanceData, BalanceSnapshot, check_swap_fields
from src.treasury.core.models.enums import SnapshotKind
from src.treasury.data.storage.base import SnapshotStore, check_page

logger = logging.getLogger(__name__)

_COLUMNS = "id, snapshot_type, swap_id, swap_type, ts, balances"

# rows written before the discriminator column existed are swap snapshots
_KIND_EXPR = "COALESCE(snapshot_type, 'swap')"


class PostgreSQLSnapshotStore(SnapshotStore):

    """
    PostgreSQL snapshot store -> table balance_snapshots (see ddl.sql).
    Insert-only; every read is a plain SELECT.
    """

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    # ======================================================================
    # HELPERS
    # ======================================================================

    def exec_ddl(self, ddl_sql: str) -> None:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(ddl_sql)
            conn.commit()

    def _fetch_all(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params or {})
                rows = cur.fetchall()
                if not rows:
                    return []
                cols = [d[0] for d in cur.description]
                return [dict(zip(cols, r)) for r in rows]

    def _fetch_one(self, query: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        rows = self._fetch_all(query, params)
        return rows[0] if rows else None

    @staticmethod
    def _kind_filter(kind: Optional[SnapshotKind], params: Dict[str, Any]) -> str:
        if kind is None:
            return ""
        params["kind"] = SnapshotKind(kind).value
        return f" AND {_KIND_EXPR} = %(kind)s"

    @staticmethod
    def _to_snapshot(row: Dict[str, Any]) -> BalanceSnapshot:
        balances = row.get("balances")
        if isinstance(balances, (str, bytes)):
            balances = json.loads(balances)
        return BalanceSnapshot(
            id=int(row["id"]),
            snapshot_kind=SnapshotKind(row.get("snapshot_type") or SnapshotKind.SWAP.value),
            timestamp=row["ts"],
            balances=BalanceData.from_dict(balances),
            swap_id=row.get("swap_id"),
            swap_type=row.get("swap_type"),
        )

    # ======================================================================
    # WRITE
    # ======================================================================

    def add_snapshot(
        self,
        kind: SnapshotKind,
        timestamp: datetime,
        balances: BalanceData,
        *,
        swap_id: Optional[str] = None,
        swap_type: Optional[str] = None,
    ) -> BalanceSnapshot:
        kind = SnapshotKind(kind)
        check_swap_fields(kind, swap_id, swap_type)

        query = """
        INSERT INTO balance_snapshots (snapshot_type, swap_id, swap_type, ts, balances)
        VALUES (%(snapshot_type)s, %(swap_id)s, %(swap_type)s, %(ts)s, %(balances)s::jsonb)
        RETURNING id
        """
        params = {
            "snapshot_type": kind.value,
            "swap_id": swap_id,
            "swap_type": swap_type,
            "ts": timestamp,
            "balances": json.dumps(balances.to_dict(), ensure_ascii=False),
        }

        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                new_id = cur.fetchone()[0]
            conn.commit()

        return BalanceSnapshot(
            id=int(new_id),
            snapshot_kind=kind,
            timestamp=timestamp,
            balances=balances,
            swap_id=swap_id,
            swap_type=swap_type,
        )

    # ======================================================================
    # READ
    # ======================================================================

    def get_by_swap_id(self, swap_id: str) -> Optional[BalanceSnapshot]:
        row = self._fetch_one(
            f"""
            SELECT {_COLUMNS}
            FROM balance_snapshots
            WHERE swap_id = %(swap_id)s
            ORDER BY ts DESC, id DESC
            LIMIT 1
            """,
            {"swap_id": swap_id},
        )
        return self._to_snapshot(row) if row else None

    def get_by_time_range(
        self,
        start: datetime,
        end: datetime,
        kind: Optional[SnapshotKind] = None,
    ) -> List[BalanceSnapshot]:
        params: Dict[str, Any] = {"start": start, "end": end}
        where = self._kind_filter(kind, params)
        rows = self._fetch_all(
            f"""
            SELECT {_COLUMNS}
            FROM balance_snapshots
            WHERE ts >= %(start)s
              AND ts <= %(end)s{where}
            ORDER BY ts ASC, id ASC
            """,
            params,
        )
        return [self._to_snapshot(r) for r in rows]

    def get_latest(self, kind: Optional[SnapshotKind] = None) -> Optional[BalanceSnapshot]:
        params: Dict[str, Any] = {}
        where = self._kind_filter(kind, params)
        row = self._fetch_one(
            f"""
            SELECT {_COLUMNS}
            FROM balance_snapshots
            WHERE TRUE{where}
            ORDER BY ts DESC, id DESC
            LIMIT 1
            """,
            params,
        )
        return self._to_snapshot(row) if row else None

    def get_snapshots(
        self,
        limit: int,
        offset: int = 0,
        kind: Optional[SnapshotKind] = None,
    ) -> Tuple[List[BalanceSnapshot], int]:
        check_page(limit, offset)
        count_params: Dict[str, Any] = {}
        where = self._kind_filter(kind, count_params)
        params = dict(count_params, limit=int(limit), offset=int(offset))

        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT COUNT(*) FROM balance_snapshots WHERE TRUE{where}", count_params)
                total = int(cur.fetchone()[0])

                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM balance_snapshots
                    WHERE TRUE{where}
                    ORDER BY ts DESC, id DESC
                    LIMIT %(limit)s OFFSET %(offset)s
                    """,
                    params,
                )
                rows = cur.fetchall()
                cols = [d[0] for d in cur.description] if rows else []

        return [self._to_snapshot(dict(zip(cols, r))) for r in rows], total
