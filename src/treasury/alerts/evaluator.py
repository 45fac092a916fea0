# src/treasury/alerts/evaluator.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from src.treasury.alerts.messages import format_alert
from src.treasury.core.config import CurrencyThreshold
from src.treasury.core.models.balances import BalanceData
from src.treasury.core.models.enums import BalanceKind
from src.treasury.notifications.base import AlertSink

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bounds:
    """Result of one bound check. in_bounds=None -> not checked."""
    in_bounds: Optional[bool]
    is_main_wallet: bool = False


@dataclass(frozen=True)
class AlertEvent:
    symbol: str
    service: str
    kind: BalanceKind
    balance: int
    in_bounds: bool
    message: str
    ts: datetime

    @property
    def is_raise(self) -> bool:
        return not self.in_bounds


class AlertState:
    """
    "Currently alerting" identifiers, one set per balance kind.
    Identifier = symbol + service.

    Process-local: after a restart every set is empty, so a bound that is
    still violated raises once more. That is expected.
    """

    def __init__(self) -> None:
        self._sets: Dict[BalanceKind, set[str]] = {k: set() for k in BalanceKind}

    @staticmethod
    def ident(symbol: str, service: str) -> str:
        return f"{symbol}{service}"

    def transition(self, kind: BalanceKind, ident: str, in_bounds: bool) -> bool:
        """
        Apply one observation. Returns True on an edge (raise or clear).
        """
        alerting = self.is_alerting(kind, ident)
        if not alerting and not in_bounds:
            self._sets[kind].add(ident)
            return True
        if alerting and in_bounds:
            self._sets[kind].discard(ident)
            return True
        return False

    def is_alerting(self, kind: BalanceKind, ident: str) -> bool:
        return ident in self._sets[kind]

    def snapshot(self) -> Dict[BalanceKind, frozenset[str]]:
        return {k: frozenset(v) for k, v in self._sets.items()}

    def reset(self) -> None:
        for s in self._sets.values():
            s.clear()


# -------------------------
# per-kind checks
# -------------------------
def check_wallet(t: CurrencyThreshold, service: str, balance: int, is_only_wallet: bool) -> Bounds:
    if is_only_wallet or service.lower() == t.main_wallet_name:
        upper = t.max_wallet_balance
        ok = t.min_wallet_balance <= balance and (upper is None or balance <= upper)
        return Bounds(ok, is_main_wallet=True)

    if t.max_unused_wallet_balance is not None:
        return Bounds(balance <= t.max_unused_wallet_balance)

    return Bounds(None)


def check_channel_local(t: CurrencyThreshold, service: str, balance: int, is_only_wallet: bool) -> Bounds:
    if t.min_local_balance is None:
        return Bounds(None)
    return Bounds(balance >= t.min_local_balance)


def check_channel_remote(t: CurrencyThreshold, service: str, balance: int, is_only_wallet: bool) -> Bounds:
    if t.min_remote_balance is None:
        return Bounds(None)
    return Bounds(balance >= t.min_remote_balance)


CHECKS: Dict[BalanceKind, Callable[[CurrencyThreshold, str, int, bool], Bounds]] = {
    BalanceKind.WALLET: check_wallet,
    BalanceKind.CHANNEL_LOCAL: check_channel_local,
    BalanceKind.CHANNEL_REMOTE: check_channel_remote,
}


class ThresholdEvaluator:
    """
    Edge-triggered threshold alerts.

    One notification per transition into or out of bounds, never one per
    poll. Evaluations are serialised: the lock is held for the whole pass,
    delivery included, so transitions and their messages keep their order.
    """

    def __init__(
        self,
        thresholds: Iterable[CurrencyThreshold],
        sink: Optional[AlertSink] = None,
    ) -> None:
        self._thresholds: tuple[CurrencyThreshold, ...] = tuple(thresholds)
        self.sink = sink
        self.state = AlertState()
        self._lock = threading.Lock()

    @property
    def thresholds(self) -> tuple[CurrencyThreshold, ...]:
        return self._thresholds

    def replace_thresholds(self, thresholds: Iterable[CurrencyThreshold]) -> None:
        """New threshold set; alert state starts over as after a restart."""
        with self._lock:
            self._thresholds = tuple(thresholds)
            self.state.reset()
        log.info("Thresholds replaced (%d), alert state reset", len(self._thresholds))

    def active_alerts(self) -> Dict[BalanceKind, frozenset[str]]:
        with self._lock:
            return self.state.snapshot()

    def evaluate(self, balances: BalanceData) -> List[AlertEvent]:
        if self.sink is None:
            return []

        with self._lock:
            events: List[AlertEvent] = []

            for t in self._thresholds:
                wallets = balances.wallets_for(t.symbol)
                is_only_wallet = len(wallets) == 1
                for w in wallets:
                    self._check(t, BalanceKind.WALLET, w.service, w.total, is_only_wallet, events)

                for ln in balances.lightning_for(t.symbol):
                    self._check(t, BalanceKind.CHANNEL_LOCAL, ln.service, ln.local, False, events)
                    self._check(t, BalanceKind.CHANNEL_REMOTE, ln.service, ln.remote, False, events)

            return events

    def _check(
        self,
        t: CurrencyThreshold,
        kind: BalanceKind,
        service: str,
        balance: int,
        is_only_wallet: bool,
        events: List[AlertEvent],
    ) -> None:
        bounds = CHECKS[kind](t, service, balance, is_only_wallet)
        if bounds.in_bounds is None:
            return

        ident = AlertState.ident(t.symbol, service)
        if not self.state.transition(kind, ident, bounds.in_bounds):
            return

        ev = AlertEvent(
            symbol=t.symbol,
            service=service,
            kind=kind,
            balance=balance,
            in_bounds=bounds.in_bounds,
            message=format_alert(
                t, kind, service, balance,
                in_bounds=bounds.in_bounds,
                is_main_wallet=bounds.is_main_wallet,
            ),
            ts=datetime.now(timezone.utc),
        )
        events.append(ev)
        self._deliver(ev)

    def _deliver(self, ev: AlertEvent) -> None:
        log.warning("Balance warning: %s", ev.message)
        try:
            self.sink.send(ev.message, True, not ev.in_bounds)
        except Exception as e:
            # transition stays committed; next edge is the next notification
            log.warning("Alert delivery failed for %s %s (%s): %s", ev.symbol, ev.service, ev.kind.value, e)
