from __future__ import annotations
from enum import Enum


class SnapshotKind(str, Enum):
    PERIODIC = "periodic"
    SWAP = "swap"


class BalanceKind(str, Enum):
    WALLET = "wallet"
    CHANNEL_LOCAL = "local"
    CHANNEL_REMOTE = "remote"


class SwapType(str, Enum):
    SUBMARINE = "SUBMARINE"
    REVERSE_SUBMARINE = "REVERSE_SUBMARINE"
    CHAIN = "CHAIN"


# swaps with a Lightning leg (either direction)
LIGHTNING_SWAP_TYPES: frozenset[SwapType] = frozenset(
    {SwapType.SUBMARINE, SwapType.REVERSE_SUBMARINE}
)

_SWAP_TYPE_PRETTY = {
    SwapType.SUBMARINE: "Submarine",
    SwapType.REVERSE_SUBMARINE: "Reverse",
    SwapType.CHAIN: "Chain",
}


def swap_type_to_pretty_string(swap_type: SwapType) -> str:
    return _SWAP_TYPE_PRETTY[SwapType(swap_type)]
