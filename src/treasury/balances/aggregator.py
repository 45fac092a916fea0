# src/treasury/balances/aggregator.py
from __future__ import annotations

import time
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from src.treasury.core.models.balances import BalanceData, LightningBalanceEntry, WalletBalanceEntry
from src.treasury.sources.base import ChannelBalanceSource, WalletBalanceSource
from src.treasury.sources.registry import SourceRegistry

log = logging.getLogger(__name__)


def _as_int(v: Any, name: str, *, non_negative: bool = False) -> int:
    """Integer amounts only; RPC payloads sometimes carry them as strings."""
    if isinstance(v, bool):
        raise ValueError(f"{name}: bool is not an amount")
    if isinstance(v, int):
        out = v
    elif isinstance(v, str) and v.strip().lstrip("-").isdigit():
        out = int(v.strip())
    else:
        raise ValueError(f"{name}: not an integer amount: {v!r}")
    if non_negative and out < 0:
        raise ValueError(f"{name}: negative amount {out}")
    return out


def _label(src: Any) -> str:
    # service_name() of a broken adapter may raise too; only used for log lines
    try:
        return str(src.service_name())
    except Exception:
        return type(src).__name__


class BalanceAggregator:
    """
    Fan-out / fan-in over all balance sources of the requested symbols.

    One task per (symbol, source). A source that raises, returns garbage or
    does not settle before the cycle deadline is logged and left out; it never
    affects the other entries. Entries are merged after the join, in symbol
    order.

    At most one query per (kind, symbol, service) is in flight. A source still
    busy with an earlier query is not resubmitted; callers wait on the pending
    future instead, so a hung source holds one worker thread, not one per cycle.
    """

    def __init__(
        self,
        registry: SourceRegistry,
        *,
        timeout_sec: float = 20.0,
        max_workers: int = 8,
    ) -> None:
        self.registry = registry
        self.timeout_sec = float(timeout_sec)
        self._pool = ThreadPoolExecutor(
            max_workers=max(1, int(max_workers)),
            thread_name_prefix="balance_src",
        )
        self._inflight: Dict[Tuple[str, str, str], Future] = {}
        self._inflight_lock = threading.Lock()

    def close(self) -> None:
        # a hung source must not block shutdown
        self._pool.shutdown(wait=False, cancel_futures=True)

    def _submit(self, kind: str, symbol: str, source: Any, fetch: Callable[[str, Any], Any]) -> Future:
        key = (kind, symbol, _label(source))
        with self._inflight_lock:
            prev = self._inflight.get(key)
            if prev is not None and not prev.done():
                log.warning(
                    "Previous %s query for %s %s still pending, not resubmitting",
                    kind, symbol, key[2],
                )
                return prev
            f = self._pool.submit(fetch, symbol, source)
            self._inflight[key] = f
        f.add_done_callback(lambda done, key=key: self._forget(key, done))
        return f

    def _forget(self, key: Tuple[str, str, str], done: Future) -> None:
        with self._inflight_lock:
            if self._inflight.get(key) is done:
                del self._inflight[key]

    # ---- single-source queries (run in pool threads)

    @staticmethod
    def _fetch_wallet(symbol: str, wallet: WalletBalanceSource) -> WalletBalanceEntry:
        bal = wallet.get_balance(symbol)
        return WalletBalanceEntry(
            symbol=symbol,
            service=wallet.service_name(),
            confirmed=_as_int(bal.confirmed_balance, "confirmed", non_negative=True),
            unconfirmed=_as_int(bal.unconfirmed_balance, "unconfirmed"),
        )

    @staticmethod
    def _fetch_lightning(symbol: str, client: ChannelBalanceSource) -> LightningBalanceEntry:
        channels = client.list_channels()

        local = 0
        remote = 0
        for ch in channels:
            local += _as_int(ch.local_balance, "local_balance", non_negative=True)
            remote += _as_int(ch.remote_balance, "remote_balance", non_negative=True)

        return LightningBalanceEntry(
            symbol=symbol,
            service=client.service_name(),
            local=int(local),
            remote=int(remote),
        )

    # ---- public API

    def get_balances(
        self,
        symbols: Optional[Iterable[str]] = None,
        include_lightning: bool = True,
    ) -> BalanceData:
        """
        symbols=None -> every symbol that has a wallet source.
        """
        if symbols is None:
            symbols_to_query = self.registry.wallet_symbols()
        else:
            symbols_to_query = list(dict.fromkeys(symbols))

        futs: List[Tuple[str, str, str, Future]] = []

        for symbol in symbols_to_query:
            for wallet in self.registry.wallets(symbol):
                f = self._submit("wallet", symbol, wallet, self._fetch_wallet)
                futs.append(("wallet", symbol, _label(wallet), f))

            if include_lightning:
                for client in self.registry.channel_sources(symbol):
                    f = self._submit("lightning", symbol, client, self._fetch_lightning)
                    futs.append(("lightning", symbol, _label(client), f))

        deadline = time.monotonic() + self.timeout_sec

        wallets: List[WalletBalanceEntry] = []
        lightning: List[LightningBalanceEntry] = []

        for kind, symbol, service, f in futs:
            try:
                entry = f.result(timeout=max(0.0, deadline - time.monotonic()))
            except FutureTimeout:
                # left running; the in-flight guard keeps it from piling up
                log.warning(
                    "Timed out getting %s balance for %s %s (>%.1fs)",
                    kind, symbol, service, self.timeout_sec,
                )
                continue
            except Exception as e:
                log.warning("Failed to get %s balance for %s %s: %s", kind, symbol, service, e)
                continue

            if kind == "wallet":
                wallets.append(entry)
            else:
                lightning.append(entry)

        log.debug(
            "Aggregated balances: symbols=%d wallets=%d lightning=%d (queries=%d)",
            len(symbols_to_query), len(wallets), len(lightning), len(futs),
        )
        return BalanceData(wallets=tuple(wallets), lightning=tuple(lightning))
