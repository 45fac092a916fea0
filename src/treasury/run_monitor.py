# src/treasury/run_monitor.py
from __future__ import annotations

import os
import time
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from src.treasury.alerts.evaluator import ThresholdEvaluator
from src.treasury.balances.aggregator import BalanceAggregator
from src.treasury.core.config import DEFAULT_CONFIG_PATH, MonitorConfig, load_config
from src.treasury.data.storage.base import SnapshotStore
from src.treasury.data.storage.memory import InMemorySnapshotStore
from src.treasury.notifications.base import AlertSink
from src.treasury.notifications.telegram import TelegramAlertSink
from src.treasury.service.balance_service import BalanceService
from src.treasury.service.snapshot_poller import PeriodicSnapshotPoller
from src.treasury.sources.registry import SourceRegistry, build_registry


log = logging.getLogger("treasury.run_monitor")


def build_service(
    cfg: MonitorConfig,
    *,
    registry: SourceRegistry,
    store: SnapshotStore,
    sink: Optional[AlertSink],
) -> BalanceService:
    aggregator = BalanceAggregator(
        registry,
        timeout_sec=cfg.source_timeout_sec,
        max_workers=cfg.max_workers,
    )
    evaluator = ThresholdEvaluator(cfg.thresholds, sink)
    return BalanceService(aggregator=aggregator, store=store, evaluator=evaluator)


def _open_store(dry_run: bool):
    """Returns (store, pool). pool is None for the in-memory store."""
    if dry_run:
        log.warning("DRY_RUN enabled -> snapshots kept in memory only")
        return InMemorySnapshotStore(), None

    dsn = os.getenv("PG_DSN", "").strip()
    if not dsn:
        raise SystemExit("PG_DSN env var is required (or set DRY_RUN=1)")

    # psycopg is only needed when a real database is used
    from src.treasury.data.storage.postgres.pool import create_pool
    from src.treasury.data.storage.postgres.storage import PostgreSQLSnapshotStore

    pool = create_pool(dsn)
    log.info("PostgreSQL snapshot store initialized")
    return PostgreSQLSnapshotStore(pool), pool


def main() -> None:
    load_dotenv()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    log.info("=== RUN TREASURY MONITOR START ===")

    dry_run = os.getenv("DRY_RUN", "0") == "1"

    cfg_path = Path(os.getenv("MONITOR_CONFIG", DEFAULT_CONFIG_PATH)).resolve()
    cfg = load_config(cfg_path)
    log.info(
        "Config: %s | thresholds=%d wallet_symbols=%d channel_symbols=%d poll_sec=%s",
        cfg_path,
        len(cfg.thresholds),
        len(cfg.wallet_sources),
        len(cfg.channel_sources),
        cfg.poll_sec,
    )

    registry = build_registry(cfg)
    sink = TelegramAlertSink.from_env()
    if sink is None:
        log.warning("No alert sink configured -> thresholds are not evaluated")

    store, pool = _open_store(dry_run)
    service = build_service(cfg, registry=registry, store=store, sink=sink)

    poller = PeriodicSnapshotPoller(service=service, poll_sec=cfg.poll_sec)
    poller.start()

    try:
        while poller.is_alive():
            time.sleep(1.0)
    except KeyboardInterrupt:
        log.info("Stopping...")
    finally:
        poller.stop()
        poller.join(timeout=5.0)
        service.close()
        service.aggregator.close()
        if pool is not None:
            pool.close()


if __name__ == "__main__":
    main()
