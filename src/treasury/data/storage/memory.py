# src/treasury/data/storage/memory.py
from __future__ import annotations

import threading
from datetime import datetime
from typing import List, Optional, Tuple

from src.treasury.core.models.balances import BalanceData, BalanceSnapshot
from src.treasury.core.models.enums import SnapshotKind
from src.treasury.data.storage.base import SnapshotStore, check_page


class InMemorySnapshotStore(SnapshotStore):
    """Process-local store for DRY_RUN. Same ordering rules as the SQL store."""

    def __init__(self) -> None:
        self._rows: List[BalanceSnapshot] = []
        self._next_id = 1
        self._lock = threading.Lock()

    def add_snapshot(
        self,
        kind: SnapshotKind,
        timestamp: datetime,
        balances: BalanceData,
        *,
        swap_id: Optional[str] = None,
        swap_type: Optional[str] = None,
    ) -> BalanceSnapshot:
        with self._lock:
            snap = BalanceSnapshot(
                id=self._next_id,
                snapshot_kind=SnapshotKind(kind),
                timestamp=timestamp,
                balances=balances,
                swap_id=swap_id,
                swap_type=swap_type,
            )
            self._rows.append(snap)
            self._next_id += 1
            return snap

    def _select(self, kind: Optional[SnapshotKind]) -> List[BalanceSnapshot]:
        with self._lock:
            rows = list(self._rows)
        if kind is not None:
            kind = SnapshotKind(kind)
            rows = [r for r in rows if r.snapshot_kind == kind]
        return rows

    def get_by_swap_id(self, swap_id: str) -> Optional[BalanceSnapshot]:
        rows = [r for r in self._select(None) if r.swap_id == swap_id]
        return max(rows, key=lambda r: (r.timestamp, r.id), default=None)

    def get_by_time_range(
        self,
        start: datetime,
        end: datetime,
        kind: Optional[SnapshotKind] = None,
    ) -> List[BalanceSnapshot]:
        rows = [r for r in self._select(kind) if start <= r.timestamp <= end]
        return sorted(rows, key=lambda r: (r.timestamp, r.id))

    def get_latest(self, kind: Optional[SnapshotKind] = None) -> Optional[BalanceSnapshot]:
        return max(self._select(kind), key=lambda r: (r.timestamp, r.id), default=None)

    def get_snapshots(
        self,
        limit: int,
        offset: int = 0,
        kind: Optional[SnapshotKind] = None,
    ) -> Tuple[List[BalanceSnapshot], int]:
        check_page(limit, offset)
        rows = sorted(self._select(kind), key=lambda r: (r.timestamp, r.id), reverse=True)
        return rows[offset:offset + limit], len(rows)
