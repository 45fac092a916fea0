# src/treasury/core/models/balances.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from src.treasury.core.models.enums import SnapshotKind


@dataclass(frozen=True, slots=True)
class WalletBalanceEntry:
    symbol: str
    service: str
    confirmed: int
    unconfirmed: int

    @property
    def total(self) -> int:
        return self.confirmed + self.unconfirmed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "service": self.service,
            "confirmed": self.confirmed,
            "unconfirmed": self.unconfirmed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WalletBalanceEntry":
        return cls(
            symbol=str(data["symbol"]),
            service=str(data["service"]),
            confirmed=int(data.get("confirmed", 0)),
            unconfirmed=int(data.get("unconfirmed", 0)),
        )


@dataclass(frozen=True, slots=True)
class LightningBalanceEntry:
    symbol: str
    service: str
    local: int
    remote: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "service": self.service,
            "local": self.local,
            "remote": self.remote,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LightningBalanceEntry":
        return cls(
            symbol=str(data["symbol"]),
            service=str(data["service"]),
            local=int(data.get("local", 0)),
            remote=int(data.get("remote", 0)),
        )


@dataclass(frozen=True, slots=True)
class BalanceData:
    """
    Point-in-time balance set produced by one aggregation.

    Entry order follows symbol iteration order at capture time and carries
    no meaning beyond that.
    """
    wallets: tuple[WalletBalanceEntry, ...] = ()
    lightning: tuple[LightningBalanceEntry, ...] = ()

    def wallets_for(self, symbol: str) -> List[WalletBalanceEntry]:
        return [w for w in self.wallets if w.symbol == symbol]

    def lightning_for(self, symbol: str) -> List[LightningBalanceEntry]:
        return [ln for ln in self.lightning if ln.symbol == symbol]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wallets": [w.to_dict() for w in self.wallets],
            "lightning": [ln.to_dict() for ln in self.lightning],
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "BalanceData":
        data = data or {}
        return cls(
            wallets=tuple(WalletBalanceEntry.from_dict(w) for w in data.get("wallets") or []),
            lightning=tuple(LightningBalanceEntry.from_dict(ln) for ln in data.get("lightning") or []),
        )


@dataclass(frozen=True, slots=True)
class BalanceSnapshot:
    id: int
    snapshot_kind: SnapshotKind
    timestamp: datetime
    balances: BalanceData = field(default_factory=BalanceData)
    swap_id: Optional[str] = None
    swap_type: Optional[str] = None

    def __post_init__(self) -> None:
        check_swap_fields(self.snapshot_kind, self.swap_id, self.swap_type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "snapshot_kind": self.snapshot_kind.value,
            "swap_id": self.swap_id,
            "swap_type": self.swap_type,
            "timestamp": self.timestamp.isoformat(),
            "balances": self.balances.to_dict(),
        }


def check_swap_fields(kind: SnapshotKind, swap_id: Optional[str], swap_type: Optional[str]) -> None:
    """swap_id/swap_type are both set for swap snapshots and both unset otherwise."""
    kind = SnapshotKind(kind)
    if kind == SnapshotKind.SWAP:
        if not swap_id or not swap_type:
            raise ValueError("swap snapshot requires swap_id and swap_type")
    elif swap_id is not None or swap_type is not None:
        raise ValueError(f"{kind.value} snapshot must not carry swap_id/swap_type")
