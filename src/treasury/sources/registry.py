# src/treasury/sources/registry.py
from __future__ import annotations

import importlib
import logging
from typing import Any, Dict, List

from src.treasury.core.config import MonitorConfig, SourceSpec
from src.treasury.sources.base import ChannelBalanceSource, WalletBalanceSource

log = logging.getLogger(__name__)


class SourceRegistry:
    """
    symbol -> wallet sources
    symbol -> channel sources

    Service names are unique per symbol and kind: alert state is keyed by
    symbol + service.
    """

    def __init__(self) -> None:
        self._wallets: Dict[str, List[WalletBalanceSource]] = {}
        self._channels: Dict[str, List[ChannelBalanceSource]] = {}

    @staticmethod
    def _add(bucket: Dict[str, list], symbol: str, source: Any, kind: str) -> None:
        name = source.service_name()
        items = bucket.setdefault(symbol, [])
        if any(s.service_name() == name for s in items):
            raise ValueError(f"{kind} source {name!r} already registered for {symbol}")
        items.append(source)

    def add_wallet(self, symbol: str, source: WalletBalanceSource) -> None:
        self._add(self._wallets, symbol, source, "wallet")

    def add_channel_source(self, symbol: str, source: ChannelBalanceSource) -> None:
        self._add(self._channels, symbol, source, "channel")

    def wallets(self, symbol: str) -> List[WalletBalanceSource]:
        return list(self._wallets.get(symbol, []))

    def channel_sources(self, symbol: str) -> List[ChannelBalanceSource]:
        return list(self._channels.get(symbol, []))

    def wallet_symbols(self) -> List[str]:
        return list(self._wallets.keys())


def _import_factory(ref: str):
    mod_name, _, attr = ref.partition(":")
    mod = importlib.import_module(mod_name)
    try:
        return getattr(mod, attr)
    except AttributeError:
        raise ValueError(f"source factory not found: {ref}") from None


def build_source(spec: SourceSpec) -> Any:
    factory = _import_factory(spec.factory)
    return factory(**spec.params)


def build_registry(cfg: MonitorConfig) -> SourceRegistry:
    reg = SourceRegistry()

    for symbol, specs in cfg.wallet_sources.items():
        for spec in specs:
            src = build_source(spec)
            if not isinstance(src, WalletBalanceSource):
                raise ValueError(f"{spec.factory} did not build a WalletBalanceSource")
            reg.add_wallet(symbol, src)
            log.info("Wallet source ready: symbol=%s service=%s", symbol, src.service_name())

    for symbol, specs in cfg.channel_sources.items():
        for spec in specs:
            src = build_source(spec)
            if not isinstance(src, ChannelBalanceSource):
                raise ValueError(f"{spec.factory} did not build a ChannelBalanceSource")
            reg.add_channel_source(symbol, src)
            log.info("Channel source ready: symbol=%s service=%s", symbol, src.service_name())

    return reg
