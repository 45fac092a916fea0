# src/treasury/data/storage/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple

from src.treasury.core.models.balances import BalanceData, BalanceSnapshot
from src.treasury.core.models.enums import SnapshotKind


class SnapshotStore(ABC):
    """
    Append-only balance snapshot store.
    Rows are never updated; later snapshots supersede earlier ones.
    """

    @abstractmethod
    def add_snapshot(
        self,
        kind: SnapshotKind,
        timestamp: datetime,
        balances: BalanceData,
        *,
        swap_id: Optional[str] = None,
        swap_type: Optional[str] = None,
    ) -> BalanceSnapshot: ...

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    @abstractmethod
    def get_by_swap_id(self, swap_id: str) -> Optional[BalanceSnapshot]:
        """Most recent snapshot of the swap."""

    @abstractmethod
    def get_by_time_range(
        self,
        start: datetime,
        end: datetime,
        kind: Optional[SnapshotKind] = None,
    ) -> List[BalanceSnapshot]:
        """start <= timestamp <= end, ascending."""

    @abstractmethod
    def get_latest(self, kind: Optional[SnapshotKind] = None) -> Optional[BalanceSnapshot]: ...

    @abstractmethod
    def get_snapshots(
        self,
        limit: int,
        offset: int = 0,
        kind: Optional[SnapshotKind] = None,
    ) -> Tuple[List[BalanceSnapshot], int]:
        """Page ordered by timestamp descending, plus total matching count."""


def check_page(limit: int, offset: int) -> None:
    if int(limit) < 0:
        raise ValueError(f"limit must be >= 0, got {limit}")
    if int(offset) < 0:
        raise ValueError(f"offset must be >= 0, got {offset}")
