# dairy_ledger/__main__.py
"""
python -m dairy_ledger [DB_PATH] [--threshold N]

Opens (creating/migrating if needed) the ledger database and logs today's
stock summary.
"""
from __future__ import annotations

import argparse

from .constants import APP_NAME, LOW_STOCK_THRESHOLD
from .database import get_connection
from .database.repositories.inventory_repo import InventoryRepo
from .utils.helpers import today_str
from .utils.loggers import get_logger


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="dairy_ledger", description=APP_NAME)
    parser.add_argument("db_path", nargs="?", default=None)
    parser.add_argument("--threshold", type=float, default=LOW_STOCK_THRESHOLD)
    args = parser.parse_args(argv)

    log = get_logger()
    conn = get_connection(args.db_path)
    try:
        summary = InventoryRepo(conn).inventory_summary(args.threshold)
    finally:
        conn.close()

    log.info(
        "%s: %d products, %d at or below %g on %s",
        APP_NAME, summary["total_products"], summary["low_stock_count"],
        args.threshold, today_str(),
    )
    for item in summary["low_stock_items"]:
        log.info("  low: %s %g %s", item["name"], item["current_stock"], item["unit"])
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
