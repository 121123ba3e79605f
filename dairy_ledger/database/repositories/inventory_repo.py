from __future__ import annotations

"""
Repository for stock: incoming entries and the derived stock levels.

Stock is never stored. It is always computed from two logs:
  incoming  = inventory.stock_in
  outgoing  = sale_items.quantity (joined through sales for the date)

Conventions:
- All list-returning methods yield `list[dict]` (sqlite3.Row -> dict).
- Date strings are ISO 'YYYY-MM-DD' and compared as text.
- Quantities are cast to float; negative stock is returned as-is.
- Only active products appear in the per-product views.
"""

import logging
import sqlite3
from typing import Dict, Iterable, List, Mapping, Tuple

from ...constants import LOW_STOCK_THRESHOLD
from ...utils.helpers import is_iso_date, previous_day
from ...utils.validators import try_parse_float
from .tx_helpers import immediate_tx

_log = logging.getLogger(__name__)


class DomainError(Exception):
    """Domain-level error suitable for surfacing to the UI."""
    pass


_CURRENT_STOCK_SQL = """
    SELECT
        p.id   AS product_id,
        p.name AS name,
        p.unit AS unit,
        COALESCE((SELECT SUM(CAST(i.stock_in AS REAL))
                    FROM inventory i
                   WHERE i.product_id = p.id), 0.0)
      - COALESCE((SELECT SUM(CAST(si.quantity AS REAL))
                    FROM sale_items si
                    JOIN sales s ON s.id = si.sale_id
                   WHERE si.product_id = p.id), 0.0)
        AS current_stock
    FROM products p
    WHERE p.is_active = 1
    ORDER BY p.name COLLATE NOCASE, p.id
"""

_LEFTOVER_SQL = """
    SELECT
        p.id AS product_id,
        COALESCE((SELECT SUM(CAST(i.stock_in AS REAL))
                    FROM inventory i
                   WHERE i.product_id = p.id AND i.date <= ?), 0.0)
      - COALESCE((SELECT SUM(CAST(si.quantity AS REAL))
                    FROM sale_items si
                    JOIN sales s ON s.id = si.sale_id
                   WHERE si.product_id = p.id AND s.date <= ?), 0.0)
        AS leftover
    FROM products p
    WHERE p.is_active = 1
    ORDER BY p.name COLLATE NOCASE, p.id
"""


def _coerce_entry(e) -> Tuple[int, float]:
    if isinstance(e, Mapping):
        product_id, stock_in = e["product_id"], e["stock_in"]
    else:
        product_id, stock_in = e
    ok, qty = try_parse_float(stock_in)
    if not ok:
        raise DomainError(f"Incoming quantity for product {product_id} is not a number: {stock_in!r}.")
    return int(product_id), qty


class InventoryRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        # Make sure rows are accessible as dicts
        self.conn.row_factory = sqlite3.Row

    # ------------------------------------------------------------------
    # Derived stock
    # ------------------------------------------------------------------
    def current_stock_per_product(self) -> List[Dict]:
        """
        All-time stock on hand: every incoming entry minus every quantity
        ever sold, regardless of date.
        Keys: product_id, name, unit, current_stock
        """
        rows = self.conn.execute(_CURRENT_STOCK_SQL).fetchall()
        return [self._with_float(r, "current_stock") for r in rows]

    def leftover_as_of(self, date: str) -> List[Dict]:
        """
        Stock as of the end of `date`: incoming dated <= date minus sales
        dated <= date. Later entries are ignored.
        Keys: product_id, leftover
        """
        self._check_date(date)
        rows = self.conn.execute(_LEFTOVER_SQL, (date, date)).fetchall()
        return [self._with_float(r, "leftover") for r in rows]

    def inventory_summary(self, threshold: float = LOW_STOCK_THRESHOLD) -> Dict:
        """
        Home screen summary. A product is low when current_stock <= threshold
        (inclusive). Oversold products show their negative stock.
        """
        rows = self.current_stock_per_product()
        low = [r for r in rows if r["current_stock"] <= float(threshold)]
        return {
            "total_products": len(rows),
            "low_stock_count": len(low),
            "low_stock_items": [
                {
                    "id": r["product_id"],
                    "name": r["name"],
                    "unit": r["unit"],
                    "current_stock": r["current_stock"],
                }
                for r in low
            ],
        }

    # ------------------------------------------------------------------
    # Incoming entries
    # ------------------------------------------------------------------
    def incoming_for_date(self, date: str) -> List[Dict]:
        rows = self.conn.execute(
            "SELECT id, product_id, CAST(stock_in AS REAL) AS stock_in "
            "FROM inventory WHERE date = ? ORDER BY product_id",
            (date,),
        ).fetchall()
        return [self._row_to_dict(r) for r in rows]

    def incoming_prefill(self, date: str) -> List[Dict]:
        """
        Default values for the incoming form of `date`: what was already
        recorded for that day, else the previous day's leftover.
        Keys: product_id, name, unit, stock_in, source ('incoming'|'leftover')
        """
        self._check_date(date)
        recorded = {r["product_id"]: r["stock_in"] for r in self.incoming_for_date(date)}
        try:
            prev = previous_day(date)
        except OverflowError:
            # 0001-01-01 has no previous day, so nothing is left over
            leftovers = {}
        else:
            leftovers = {r["product_id"]: r["leftover"] for r in self.leftover_as_of(prev)}

        out = []
        for p in self.conn.execute(
            "SELECT id, name, unit FROM products WHERE is_active = 1 ORDER BY name COLLATE NOCASE, id"
        ).fetchall():
            pid = int(p["id"])
            if pid in recorded:
                qty, source = recorded[pid], "incoming"
            else:
                qty, source = leftovers.get(pid, 0.0), "leftover"
            out.append({
                "product_id": pid,
                "name": p["name"],
                "unit": p["unit"],
                "stock_in": float(qty),
                "source": source,
            })
        return out

    def upsert_incoming(
        self,
        date: str,
        entries: Iterable[Tuple[int, float] | Mapping],
    ) -> Tuple[int, int]:
        """
        Record incoming stock for `date`, one entry per product.
        Existing (product_id, date) rows are updated in place, missing ones
        inserted. All entries commit together or not at all.
        Returns (inserted, updated).
        """
        self._check_date(date)
        pairs = [_coerce_entry(e) for e in entries]

        inserted = updated = 0
        with immediate_tx(self.conn):
            for product_id, stock_in in pairs:
                row = self.conn.execute(
                    "SELECT id FROM inventory WHERE product_id=? AND date=?",
                    (product_id, date),
                ).fetchone()
                if row:
                    self.conn.execute(
                        "UPDATE inventory SET stock_in=? WHERE id=?",
                        (stock_in, int(row["id"])),
                    )
                    updated += 1
                else:
                    self.conn.execute(
                        "INSERT INTO inventory (product_id, date, stock_in) VALUES (?, ?, ?)",
                        (product_id, date, stock_in),
                    )
                    inserted += 1

        _log.info("Incoming for %s saved: %d inserted, %d updated", date, inserted, updated)
        return inserted, updated

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------
    @staticmethod
    def _check_date(date: str) -> None:
        if not is_iso_date(date):
            raise DomainError(f"Date must be YYYY-MM-DD, got {date!r}.")

    @staticmethod
    def _row_to_dict(r: sqlite3.Row | dict) -> Dict:
        return dict(r)

    @classmethod
    def _with_float(cls, r: sqlite3.Row, key: str) -> Dict:
        d = cls._row_to_dict(r)
        d[key] = float(d[key] or 0.0)
        return d
