# src/treasury/sources/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


# -------- payloads --------

@dataclass(frozen=True, slots=True)
class WalletBalance:
    confirmed_balance: int
    unconfirmed_balance: int


@dataclass(frozen=True, slots=True)
class ChannelBalance:
    local_balance: int
    remote_balance: int


# -------- base sources --------

class WalletBalanceSource(ABC):
    """
    On-chain wallet of one symbol.
    Amounts are integers in the smallest currency unit.
    """

    @abstractmethod
    def service_name(self) -> str:
        ...

    @abstractmethod
    def get_balance(self, symbol: str) -> WalletBalance:
        ...


class ChannelBalanceSource(ABC):
    """
    Payment-channel node (LND, CLN, ...) of one symbol.
    """

    @abstractmethod
    def service_name(self) -> str:
        ...

    @abstractmethod
    def list_channels(self) -> list[ChannelBalance]:
        """Open channels of the node."""
        ...
