# src/treasury/cli/migrate.py
from pathlib import Path
import os

from dotenv import load_dotenv

from src.treasury.data.storage.postgres.pool import create_pool
from src.treasury.data.storage.postgres.storage import PostgreSQLSnapshotStore

DDL_PATH = Path(__file__).resolve().parents[1] / "data" / "storage" / "postgres" / "ddl.sql"


def main() -> None:
    load_dotenv()
    dsn = os.getenv("PG_DSN")
    if not dsn:
        raise RuntimeError("PG_DSN env var is required")

    pool = create_pool(dsn)
    try:
        store = PostgreSQLSnapshotStore(pool)
        store.exec_ddl(DDL_PATH.read_text(encoding="utf-8"))
        print(f"[migrate] applied {DDL_PATH.name}")
    finally:
        pool.close()


if __name__ == "__main__":
    main()
