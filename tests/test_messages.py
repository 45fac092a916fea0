from __future__ import annotations

import pytest

from src.treasury.alerts.messages import CHECKMARK, ROTATING_LIGHT, format_alert, satoshis_to_satcomma
from src.treasury.core.models.enums import BalanceKind


@pytest.mark.parametrize(
    "amount, expected",
    [
        (0, "0.00,000,000"),
        (1, "0.00,000,001"),
        (12_345_678, "0.12,345,678"),
        (100_000_000, "1.00,000,000"),
        (2_100_000_000_000_000, "21000000.00,000,000"),
        (-5, "-0.00,000,005"),
    ],
)
def test_satcomma(amount, expected):
    assert satoshis_to_satcomma(amount) == expected


def test_main_wallet_raise_lists_max_then_min(btc_threshold):
    msg = format_alert(btc_threshold, BalanceKind.WALLET, "lnd", 20_000, in_bounds=False, is_main_wallet=True)

    lines = msg.split("\n")
    assert lines[0] == f"{ROTATING_LIGHT} BTC lnd wallet balance is out of bounds {ROTATING_LIGHT}"
    assert lines[1] == "  Balance: 0.00,020,000"
    assert lines[2] == "    Max: 0.00,010,000"
    assert lines[3] == "    Min: 0.00,001,000"


def test_unused_wallet_raise_only_lists_unused_cap(btc_threshold):
    msg = format_alert(btc_threshold, BalanceKind.WALLET, "core", 600, in_bounds=False, is_main_wallet=False)

    assert msg.endswith("    Max: 0.00,000,500")
    assert "Min:" not in msg


def test_wallet_clear(btc_threshold):
    msg = format_alert(btc_threshold, BalanceKind.WALLET, "lnd", 5_000, in_bounds=True, is_main_wallet=True)

    assert msg == f"{CHECKMARK} BTC lnd wallet balance of 0.00,005,000 is in bounds again {CHECKMARK}"


def test_remote_channel_messages(btc_threshold):
    raised = format_alert(btc_threshold, BalanceKind.CHANNEL_REMOTE, "LND", 10, in_bounds=False, is_main_wallet=False)
    cleared = format_alert(btc_threshold, BalanceKind.CHANNEL_REMOTE, "LND", 3_000, in_bounds=True, is_main_wallet=False)

    assert raised == (
        f"{ROTATING_LIGHT} BTC LND remote channel balance of 0.00,000,010 "
        f"is less than expected 0.00,003,000 {ROTATING_LIGHT}"
    )
    assert cleared == (
        f"{CHECKMARK} BTC LND remote channel balance of 0.00,003,000 "
        f"is more than expected 0.00,003,000 again {CHECKMARK}"
    )
