from __future__ import annotations

import os
import json
import argparse
from datetime import datetime, timezone
from typing import List, Optional

from dotenv import load_dotenv

from src.treasury.core.models.balances import BalanceSnapshot
from src.treasury.core.models.enums import SnapshotKind
from src.treasury.data.storage.base import SnapshotStore


def _ts(s: str) -> datetime:
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _kind(s: Optional[str]) -> Optional[SnapshotKind]:
    return SnapshotKind(s) if s else None


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="treasury-snapshots", description="Query balance snapshots")
    sub = ap.add_subparsers(dest="cmd", required=True)

    kinds = [k.value for k in SnapshotKind]

    p = sub.add_parser("latest", help="most recent snapshot")
    p.add_argument("--kind", choices=kinds)

    p = sub.add_parser("swap", help="most recent snapshot of a swap")
    p.add_argument("swap_id")

    p = sub.add_parser("range", help="snapshots in [start, end], ascending")
    p.add_argument("start", type=_ts)
    p.add_argument("end", type=_ts)
    p.add_argument("--kind", choices=kinds)

    p = sub.add_parser("list", help="page of snapshots, newest first")
    p.add_argument("--limit", type=int, default=20)
    p.add_argument("--offset", type=int, default=0)
    p.add_argument("--kind", choices=kinds)

    return ap


def run_query(store: SnapshotStore, args: argparse.Namespace) -> dict:
    def dump(rows: List[BalanceSnapshot]) -> list:
        return [r.to_dict() for r in rows]

    if args.cmd == "latest":
        snap = store.get_latest(_kind(args.kind))
        return {"snapshot": snap.to_dict() if snap else None}

    if args.cmd == "swap":
        snap = store.get_by_swap_id(args.swap_id)
        return {"snapshot": snap.to_dict() if snap else None}

    if args.cmd == "range":
        if args.start > args.end:
            raise SystemExit("start must not be after end")
        return {"snapshots": dump(store.get_by_time_range(args.start, args.end, _kind(args.kind)))}

    rows, total = store.get_snapshots(args.limit, args.offset, _kind(args.kind))
    return {"snapshots": dump(rows), "total": total, "limit": args.limit, "offset": args.offset}


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    load_dotenv()
    dsn = os.environ.get("PG_DSN")
    if not dsn:
        raise SystemExit("PG_DSN env var is required")

    from src.treasury.data.storage.postgres.pool import create_pool
    from src.treasury.data.storage.postgres.storage import PostgreSQLSnapshotStore

    pool = create_pool(dsn, max_size=1)
    try:
        out = run_query(PostgreSQLSnapshotStore(pool), args)
    finally:
        pool.close()

    print(json.dumps(out, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
