from __future__ import annotations

from pathlib import Path

import pytest

from src.treasury.core.config import (
    LIQUID_SYMBOL,
    CurrencyThreshold,
    SourceSpec,
    load_config,
    parse_config,
    parse_thresholds,
)

REPO_CONFIG = Path(__file__).resolve().parents[1] / "config" / "monitor.yaml"


def test_currency_without_min_wallet_balance_is_not_monitored():
    out = parse_thresholds({"currencies": [{"symbol": "RBTC"}, {"symbol": "BTC", "min_wallet_balance": 5}]})

    assert [t.symbol for t in out] == ["BTC"]


def test_currency_without_symbol_is_liquid():
    (t,) = parse_thresholds({"currencies": [{"min_wallet_balance": 1}]})

    assert t.symbol == LIQUID_SYMBOL


def test_token_requires_min_wallet_balance():
    with pytest.raises(ValueError, match="min_wallet_balance"):
        parse_thresholds({"tokens": [{"symbol": "USDT"}]})


def test_duplicate_symbol_rejected():
    raw = {
        "currencies": [{"symbol": "BTC", "min_wallet_balance": 1}],
        "tokens": [{"symbol": "BTC", "min_wallet_balance": 2}],
    }
    with pytest.raises(ValueError, match="duplicate"):
        parse_thresholds(raw)


@pytest.mark.parametrize("value", [-1, 1.5, "100", True])
def test_amounts_must_be_non_negative_integers(value):
    with pytest.raises(ValueError):
        parse_thresholds({"currencies": [{"symbol": "BTC", "min_wallet_balance": value}]})


def test_max_below_min_rejected():
    with pytest.raises(ValueError, match="below"):
        parse_thresholds({"currencies": [{"symbol": "BTC", "min_wallet_balance": 10, "max_wallet_balance": 5}]})


def test_main_wallet_name():
    assert CurrencyThreshold("BTC", 0).main_wallet_name == "lnd"
    assert CurrencyThreshold("BTC", 0, preferred_wallet="Core").main_wallet_name == "core"


def test_sources_accept_string_or_list():
    cfg = parse_config({
        "sources": {
            "wallets": {
                "BTC": "tests.fakes:build_wallet",
                "L-BTC": [{"factory": "tests.fakes:build_wallet", "params": {"name": "elements"}}],
            },
        },
    })

    assert cfg.wallet_sources["BTC"] == (SourceSpec("tests.fakes:build_wallet"),)
    assert cfg.wallet_sources["L-BTC"][0].params == {"name": "elements"}
    assert cfg.channel_sources == {}


def test_factory_reference_needs_colon():
    with pytest.raises(ValueError, match="factory"):
        parse_config({"sources": {"wallets": {"BTC": "tests.fakes.build_wallet"}}})


@pytest.mark.parametrize(
    "monitor",
    [{"poll_sec": 0}, {"source_timeout_sec": -1}, {"max_workers": 0}],
)
def test_monitor_section_validation(monitor):
    with pytest.raises(ValueError):
        parse_config({"monitor": monitor})


def test_defaults():
    cfg = parse_config({})

    assert cfg.poll_sec == 60
    assert cfg.source_timeout_sec == 20
    assert cfg.max_workers == 8
    assert cfg.thresholds == ()


def test_bundled_config_loads():
    cfg = load_config(REPO_CONFIG)

    assert [t.symbol for t in cfg.thresholds] == ["BTC", "L-BTC", "USDT"]
    assert cfg.thresholds[0].min_local_balance == 5_000_000


def test_missing_config_file_exits(tmp_path):
    with pytest.raises(SystemExit):
        load_config(tmp_path / "nope.yaml")


def test_config_path_from_env(tmp_path, monkeypatch):
    p = tmp_path / "m.yaml"
    p.write_text("monitor:\n  poll_sec: 5\n", encoding="utf-8")
    monkeypatch.setenv("MONITOR_CONFIG", str(p))

    assert load_config().poll_sec == 5
