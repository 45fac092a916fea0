from __future__ import annotations

import pytest

from src.treasury.core.config import parse_config
from src.treasury.sources.registry import build_registry


def test_build_registry_from_factories():
    cfg = parse_config({
        "sources": {
            "wallets": {
                "BTC": [
                    {"factory": "tests.fakes:build_wallet", "params": {"name": "lnd", "confirmed": 10}},
                    {"factory": "tests.fakes:build_wallet", "params": {"name": "core"}},
                ],
            },
            "channels": {"BTC": "tests.fakes:FakeChannels"},
        },
    })

    reg = build_registry(cfg)

    assert [w.service_name() for w in reg.wallets("BTC")] == ["lnd", "core"]
    assert reg.wallets("BTC")[0].get_balance("BTC").confirmed_balance == 10
    assert [c.service_name() for c in reg.channel_sources("BTC")] == ["LND"]
    assert reg.wallet_symbols() == ["BTC"]
    assert reg.wallets("XMR") == []


def test_factory_must_build_the_right_kind():
    cfg = parse_config({"sources": {"wallets": {"BTC": "tests.fakes:FakeChannels"}}})

    with pytest.raises(ValueError, match="WalletBalanceSource"):
        build_registry(cfg)


def test_unknown_factory_attribute():
    cfg = parse_config({"sources": {"wallets": {"BTC": "tests.fakes:no_such_thing"}}})

    with pytest.raises(ValueError, match="not found"):
        build_registry(cfg)
