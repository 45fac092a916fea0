# src/treasury/service/balance_service.py
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Optional, Tuple

from src.treasury.alerts.evaluator import ThresholdEvaluator
from src.treasury.balances.aggregator import BalanceAggregator
from src.treasury.core.models.balances import BalanceSnapshot
from src.treasury.core.models.enums import (
    LIGHTNING_SWAP_TYPES,
    SnapshotKind,
    SwapType,
    swap_type_to_pretty_string,
)
from src.treasury.data.storage.base import SnapshotStore

log = logging.getLogger("treasury.balance_service")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def split_pair_id(pair: str) -> Tuple[str, str]:
    """ "L-BTC/BTC" -> ("L-BTC", "BTC") """
    base, sep, quote = str(pair or "").partition("/")
    base, quote = base.strip(), quote.strip()
    if not sep or not base or not quote or "/" in quote:
        raise ValueError(f"invalid pair id: {pair!r}")
    return base, quote


class BalanceService:
    """
    Capture paths:

      periodic : all symbols + channels -> store, then thresholds
      swap     : the pair's two symbols (+ channels for Lightning swaps) -> store

    Store and evaluator are independent: a failed write does not skip the
    threshold check, a failed notification does not undo the write.
    Neither capture raises.
    """

    def __init__(
        self,
        *,
        aggregator: BalanceAggregator,
        store: SnapshotStore,
        evaluator: Optional[ThresholdEvaluator] = None,
        swap_workers: int = 2,
    ) -> None:
        self.aggregator = aggregator
        self.store = store
        self.evaluator = evaluator
        self._swap_pool = ThreadPoolExecutor(max_workers=max(1, int(swap_workers)), thread_name_prefix="swap_snapshot")
        log.info("Initialized BalanceService")

    def close(self) -> None:
        self._swap_pool.shutdown(wait=True)

    # ---- periodic

    def capture_periodic_snapshot(self) -> Optional[BalanceSnapshot]:
        started = _utc_now()
        try:
            balances = self.aggregator.get_balances()
        except Exception as e:
            log.warning("Failed to aggregate balances for periodic snapshot: %s", e)
            return None

        snap: Optional[BalanceSnapshot] = None
        try:
            snap = self.store.add_snapshot(SnapshotKind.PERIODIC, started, balances)
            log.debug("Captured periodic balance snapshot id=%s", snap.id)
        except Exception as e:
            log.warning("Failed to capture periodic snapshot: %s", e)

        if self.evaluator is not None:
            try:
                self.evaluator.evaluate(balances)
            except Exception:
                log.exception("Threshold evaluation failed")

        return snap

    # ---- swap

    def capture_swap_snapshot(self, swap_id: str, swap_type: SwapType, pair: str) -> Optional[BalanceSnapshot]:
        started = _utc_now()
        try:
            swap_type = SwapType(swap_type)
            base, quote = split_pair_id(pair)
            balances = self.aggregator.get_balances(
                [base, quote],
                include_lightning=swap_type in LIGHTNING_SWAP_TYPES,
            )
            pretty = swap_type_to_pretty_string(swap_type)

            snap = self.store.add_snapshot(
                SnapshotKind.SWAP,
                started,
                balances,
                swap_id=swap_id,
                swap_type=pretty,
            )
            log.debug("Captured balance snapshot for %s swap %s (%s)", pretty, swap_id, pair)
            return snap
        except Exception as e:
            log.warning("Failed to capture balance snapshot for swap %s: %s", swap_id, e)
            return None

    def submit_swap_snapshot(self, swap_id: str, swap_type: SwapType, pair: str) -> Future:
        """Background capture; the swap flow never waits on it."""
        return self._swap_pool.submit(self.capture_swap_snapshot, swap_id, swap_type, pair)
