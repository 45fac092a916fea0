# src/treasury/alerts/messages.py
from __future__ import annotations

from decimal import Decimal

from src.treasury.core.config import CurrencyThreshold
from src.treasury.core.models.enums import BalanceKind

CHECKMARK = "✅"
ROTATING_LIGHT = "🚨"

_COIN = Decimal(100_000_000)


def satoshis_to_satcomma(amount: int) -> str:
    """
    12345678 -> "0.12,345,678"
    Whole coins before the dot, then the eight decimals grouped 2/3/3.
    """
    coins = f"{Decimal(int(amount)) / _COIN:.8f}"
    for num, index in enumerate((3, 6)):
        cut = len(coins) - index - num
        coins = f"{coins[:cut]},{coins[cut:]}"
    return coins


def _channel_min(threshold: CurrencyThreshold, kind: BalanceKind) -> int:
    if kind == BalanceKind.CHANNEL_LOCAL:
        return int(threshold.min_local_balance or 0)
    return int(threshold.min_remote_balance or 0)


def format_alert(
    threshold: CurrencyThreshold,
    kind: BalanceKind,
    service: str,
    balance: int,
    *,
    in_bounds: bool,
    is_main_wallet: bool,
) -> str:
    name = f"{threshold.symbol} {service}"

    if kind == BalanceKind.WALLET:
        if in_bounds:
            return (
                f"{CHECKMARK} {name} wallet balance of {satoshis_to_satcomma(balance)} "
                f"is in bounds again {CHECKMARK}"
            )

        if is_main_wallet:
            limits = ""
            if threshold.max_wallet_balance is not None:
                limits += f"    Max: {satoshis_to_satcomma(threshold.max_wallet_balance)}\n"
            limits += f"    Min: {satoshis_to_satcomma(threshold.min_wallet_balance)}"
        else:
            limits = f"    Max: {satoshis_to_satcomma(int(threshold.max_unused_wallet_balance or 0))}"

        return (
            f"{ROTATING_LIGHT} {name} wallet balance is out of bounds {ROTATING_LIGHT}\n"
            f"  Balance: {satoshis_to_satcomma(balance)}\n"
            f"{limits}"
        )

    side = "local" if kind == BalanceKind.CHANNEL_LOCAL else "remote"
    expected = satoshis_to_satcomma(_channel_min(threshold, kind))

    if in_bounds:
        return (
            f"{CHECKMARK} {name} {side} channel balance of {satoshis_to_satcomma(balance)} "
            f"is more than expected {expected} again {CHECKMARK}"
        )
    return (
        f"{ROTATING_LIGHT} {name} {side} channel balance of {satoshis_to_satcomma(balance)} "
        f"is less than expected {expected} {ROTATING_LIGHT}"
    )
