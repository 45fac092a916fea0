# src/treasury/core/config.py
from __future__ import annotations

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

log = logging.getLogger("treasury.config")

# currency entries without a symbol describe the Liquid chain
LIQUID_SYMBOL = "L-BTC"
DEFAULT_CONFIG_PATH = "config/monitor.yaml"


@dataclass(frozen=True)
class CurrencyThreshold:
    symbol: str
    min_wallet_balance: int
    preferred_wallet: Optional[str] = None
    max_wallet_balance: Optional[int] = None
    max_unused_wallet_balance: Optional[int] = None
    min_local_balance: Optional[int] = None
    min_remote_balance: Optional[int] = None

    @property
    def main_wallet_name(self) -> str:
        return (self.preferred_wallet or "lnd").lower()


@dataclass(frozen=True)
class SourceSpec:
    """Adapter factory reference: "package.module:callable" plus kwargs."""
    factory: str
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MonitorConfig:
    poll_sec: float = 60.0
    source_timeout_sec: float = 20.0
    max_workers: int = 8

    thresholds: tuple[CurrencyThreshold, ...] = ()

    wallet_sources: Dict[str, tuple[SourceSpec, ...]] = field(default_factory=dict)
    channel_sources: Dict[str, tuple[SourceSpec, ...]] = field(default_factory=dict)


# -------------------------
# parsing helpers
# -------------------------
def _amount(entry: Dict[str, Any], key: str, where: str, *, required: bool = False) -> Optional[int]:
    v = entry.get(key)
    if v is None:
        if required:
            raise ValueError(f"{where}: {key} is required")
        return None
    if isinstance(v, bool) or not isinstance(v, int):
        raise ValueError(f"{where}: {key} must be an integer amount, got {v!r}")
    if v < 0:
        raise ValueError(f"{where}: {key} must be >= 0, got {v}")
    return v


def _parse_threshold(entry: Any, where: str, *, default_symbol: Optional[str] = None) -> CurrencyThreshold:
    if not isinstance(entry, dict):
        raise ValueError(f"{where} must be a mapping")

    symbol = str(entry.get("symbol") or default_symbol or "").strip()
    if not symbol:
        raise ValueError(f"{where}: symbol is required")

    min_wallet = _amount(entry, "min_wallet_balance", where, required=True)
    max_wallet = _amount(entry, "max_wallet_balance", where)
    if max_wallet is not None and max_wallet < min_wallet:
        raise ValueError(
            f"{where}: max_wallet_balance ({max_wallet}) is below min_wallet_balance ({min_wallet})"
        )

    preferred = entry.get("preferred_wallet")
    return CurrencyThreshold(
        symbol=symbol,
        min_wallet_balance=min_wallet,
        preferred_wallet=str(preferred).strip() if preferred else None,
        max_wallet_balance=max_wallet,
        max_unused_wallet_balance=_amount(entry, "max_unused_wallet_balance", where),
        min_local_balance=_amount(entry, "min_local_balance", where),
        min_remote_balance=_amount(entry, "min_remote_balance", where),
    )


def parse_thresholds(raw: Dict[str, Any]) -> List[CurrencyThreshold]:
    """
    currencies: entries without min_wallet_balance are not monitored.
    tokens:     every entry is monitored, min_wallet_balance is required.
    """
    out: List[CurrencyThreshold] = []

    for i, it in enumerate(raw.get("currencies") or []):
        where = f"currencies[{i}]"
        if isinstance(it, dict) and it.get("min_wallet_balance") is None:
            log.info("%s (%s) has no min_wallet_balance -> not monitored", where, it.get("symbol") or LIQUID_SYMBOL)
            continue
        out.append(_parse_threshold(it, where, default_symbol=LIQUID_SYMBOL))

    for i, it in enumerate(raw.get("tokens") or []):
        out.append(_parse_threshold(it, f"tokens[{i}]"))

    seen: set[str] = set()
    for t in out:
        if t.symbol in seen:
            raise ValueError(f"duplicate threshold for symbol {t.symbol}")
        seen.add(t.symbol)

    return out


def _parse_source(entry: Any, where: str) -> SourceSpec:
    if isinstance(entry, str):
        entry = {"factory": entry}
    if not isinstance(entry, dict) or not entry.get("factory"):
        raise ValueError(f"{where}: expected a mapping with 'factory'")
    factory = str(entry["factory"]).strip()
    if ":" not in factory:
        raise ValueError(f"{where}: factory must look like 'package.module:callable', got {factory!r}")
    params = entry.get("params") or {}
    if not isinstance(params, dict):
        raise ValueError(f"{where}: params must be a mapping")
    return SourceSpec(factory=factory, params=dict(params))


def _parse_sources(section: Any, where: str) -> Dict[str, tuple[SourceSpec, ...]]:
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ValueError(f"{where} must be a mapping of symbol -> source(s)")
    out: Dict[str, tuple[SourceSpec, ...]] = {}
    for sym, specs in section.items():
        if not isinstance(specs, list):
            specs = [specs]
        out[str(sym)] = tuple(_parse_source(s, f"{where}.{sym}[{i}]") for i, s in enumerate(specs))
    return out


def parse_config(raw: Dict[str, Any]) -> MonitorConfig:
    raw = raw or {}
    mon = raw.get("monitor") or {}
    src = raw.get("sources") or {}

    wallet_sources = _parse_sources(src.get("wallets"), "sources.wallets")
    channel_sources = _parse_sources(src.get("channels"), "sources.channels")

    cfg = MonitorConfig(
        poll_sec=float(mon.get("poll_sec", 60)),
        source_timeout_sec=float(mon.get("source_timeout_sec", 20)),
        max_workers=int(mon.get("max_workers", 8)),
        thresholds=tuple(parse_thresholds(raw)),
        wallet_sources=wallet_sources,
        channel_sources=channel_sources,
    )

    if cfg.poll_sec <= 0:
        raise ValueError(f"monitor.poll_sec must be > 0, got {cfg.poll_sec}")
    if cfg.source_timeout_sec <= 0:
        raise ValueError(f"monitor.source_timeout_sec must be > 0, got {cfg.source_timeout_sec}")
    if cfg.max_workers < 1:
        raise ValueError(f"monitor.max_workers must be >= 1, got {cfg.max_workers}")
    return cfg


def load_config(path: Optional[Path] = None) -> MonitorConfig:
    path = path or Path(os.getenv("MONITOR_CONFIG", DEFAULT_CONFIG_PATH))
    if not path.exists():
        raise SystemExit(f"Config file not found: {path}")
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return parse_config(raw)
