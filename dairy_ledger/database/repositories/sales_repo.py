from __future__ import annotations
from dataclasses import dataclass
import logging
import sqlite3
from typing import Iterable, Mapping

from ...utils.helpers import is_iso_date
from .prices_repo import PricesRepo
from .tx_helpers import immediate_tx

_log = logging.getLogger(__name__)


class DomainError(Exception):
    """Domain-level error suitable for surfacing to the UI."""
    pass


@dataclass
class SaleLine:
    product_id: int
    quantity: float
    price: float

    @property
    def amount(self) -> float:
        return self.quantity * self.price


def _coerce_line(it) -> SaleLine:
    """Accept SaleLine, (product_id, quantity, price) tuples or mappings."""
    if isinstance(it, SaleLine):
        return it
    if isinstance(it, Mapping):
        return SaleLine(int(it["product_id"]), float(it["quantity"]), float(it["price"]))
    product_id, quantity, price = it
    return SaleLine(int(product_id), float(quantity), float(price))


class SalesRepo:
    """
    Daily sales: exactly one `sales` row per (customer_id, date) whose
    `total` always equals SUM(quantity * price_used) of its sale_items.

    The only writer is upsert_daily_sale(); line items are never inserted or
    deleted one at a time from outside this class.
    """

    def __init__(self, conn: sqlite3.Connection):
        # ensure rows behave like dicts/tuples
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.prices = PricesRepo(conn)

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def find_sale_id(self, customer_id: int, date: str) -> int | None:
        """Most recent sale for the natural key (customer_id, date), if any."""
        row = self.conn.execute(
            "SELECT id FROM sales WHERE customer_id=? AND date=? ORDER BY id DESC LIMIT 1",
            (customer_id, date),
        ).fetchone()
        return None if row is None else int(row["id"])

    def list_items(self, sale_id: int) -> list[dict]:
        sql = """
        SELECT si.id, si.sale_id, si.product_id, p.name AS product_name, p.unit,
               CAST(si.quantity AS REAL)   AS quantity,
               CAST(si.price_used AS REAL) AS price_used
        FROM sale_items si
        JOIN products p ON p.id = si.product_id
        WHERE si.sale_id = ?
        ORDER BY si.id
        """
        return [dict(r) for r in self.conn.execute(sql, (sale_id,)).fetchall()]

    def get_daily_sale(self, customer_id: int, date: str) -> dict | None:
        """
        {"id", "customer_id", "date", "total", "items": [...]} or None when
        no sale exists for that day. A sale with no items (zeroed day) is
        returned with an empty list.
        """
        row = self.conn.execute(
            "SELECT id, customer_id, date, CAST(total AS REAL) AS total "
            "FROM sales WHERE customer_id=? AND date=? ORDER BY id DESC LIMIT 1",
            (customer_id, date),
        ).fetchone()
        if row is None:
            return None
        sale = dict(row)
        sale["items"] = self.list_items(sale["id"])
        return sale

    def list_sales_on(self, date: str) -> list[dict]:
        sql = """
        SELECT s.id, s.customer_id, c.name AS customer_name, s.date,
               CAST(s.total AS REAL) AS total
        FROM sales s
        JOIN customers c ON c.id = s.customer_id
        WHERE s.date = ?
        ORDER BY c.name COLLATE NOCASE, s.id
        """
        return [dict(r) for r in self.conn.execute(sql, (date,)).fetchall()]

    def entry_sheet(self, customer_id: int, date: str) -> list[dict]:
        """
        Prefill for the daily entry screen: one row per active product with
        the quantity already recorded for that day and the price to charge.
        Existing lines keep their historical price_used; the rest get the
        currently resolved price.

        Lines recorded for a product that has since been archived are listed
        after the active ones (archived=True), so saving the sheet back does
        not drop them.
        """
        recorded: dict[int, dict] = {}
        sale_id = self.find_sale_id(customer_id, date)
        if sale_id is not None:
            for it in self.list_items(sale_id):
                recorded[int(it["product_id"])] = it

        sheet = []
        for p in self.prices.price_list(customer_id):
            line = recorded.pop(p["id"], None)
            sheet.append({
                "product_id": p["id"],
                "name": p["name"],
                "unit": p["unit"],
                "quantity": float(line["quantity"]) if line else 0.0,
                "price": float(line["price_used"]) if line else p["effective_price"],
                "is_special": p["is_special"],
                "archived": False,
            })
        for pid, line in recorded.items():
            sheet.append({
                "product_id": pid,
                "name": line["product_name"],
                "unit": line["unit"],
                "quantity": float(line["quantity"]),
                "price": float(line["price_used"]),
                "is_special": False,
                "archived": True,
            })
        return sheet

    def build_lines(
        self,
        customer_id: int,
        quantities: Mapping[int, float],
        prices: Mapping[int, float] | None = None,
    ) -> list[SaleLine]:
        """
        Turn {product_id: quantity} into priced lines, dropping zero
        quantities. upsert_daily_sale() persists whatever it is given, so
        callers assembling a day from a form should go through here.

        A product listed in `prices` keeps that price (pass the entry sheet's
        prices to re-save a day at its recorded rates); any other product is
        priced with resolve_price() as of now.
        """
        prices = prices or {}
        lines = []
        for product_id, qty in quantities.items():
            q = float(qty or 0)
            if q == 0:
                continue
            pid = int(product_id)
            if pid in prices:
                price = float(prices[pid])
            else:
                price = self.prices.resolve_price(customer_id, pid)
            lines.append(SaleLine(pid, q, price))
        return lines

    # ---------------------------------------------------------------------
    # INTERNAL WRITES
    # ---------------------------------------------------------------------
    def _insert_item(self, sale_id: int, line: SaleLine) -> int:
        cur = self.conn.execute(
            "INSERT INTO sale_items (sale_id, product_id, quantity, price_used) VALUES (?,?,?,?)",
            (sale_id, line.product_id, line.quantity, line.price),
        )
        return int(cur.lastrowid)

    # ---------------------------------------------------------------------
    # WRITE
    # ---------------------------------------------------------------------
    def upsert_daily_sale(
        self,
        customer_id: int,
        date: str,
        items: Iterable[SaleLine | tuple | Mapping],
    ) -> int:
        """
        Make the sale for (customer_id, date) hold exactly `items`.

        Existing sale: every current line is deleted, the supplied lines are
        inserted, the total is rewritten. No sale yet: a header is inserted
        with the total, then the lines. An empty `items` leaves a sale with
        total 0 and no lines.

        Runs as one IMMEDIATE transaction; any failure rolls back the whole
        batch. Returns the sale id.
        """
        if not is_iso_date(date):
            raise DomainError(f"Date must be YYYY-MM-DD, got {date!r}.")
        lines = [_coerce_line(it) for it in items]
        total = sum(ln.amount for ln in lines)

        with immediate_tx(self.conn):
            sale_id = self.find_sale_id(customer_id, date)
            if sale_id is not None:
                self.conn.execute("DELETE FROM sale_items WHERE sale_id=?", (sale_id,))
                for ln in lines:
                    self._insert_item(sale_id, ln)
                self.conn.execute("UPDATE sales SET total=? WHERE id=?", (total, sale_id))
                action = "updated"
            else:
                self.conn.execute(
                    "INSERT INTO sales (customer_id, date, total) VALUES (?, ?, ?)",
                    (customer_id, date, total),
                )
                # Resolve by natural key, not by a connection-wide last insert id.
                sale_id = self.find_sale_id(customer_id, date)
                for ln in lines:
                    self._insert_item(sale_id, ln)
                action = "created"

        _log.info(
            "Sale %s %s for customer %s on %s: %d line(s), total %.2f",
            sale_id, action, customer_id, date, len(lines), total,
        )
        return sale_id

    def delete_daily_sale(self, customer_id: int, date: str) -> bool:
        """
        Remove the sale record itself (items cascade). Distinct from
        upserting an empty list, which keeps a zero-total sale.
        """
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "DELETE FROM sales WHERE customer_id=? AND date=?",
                (customer_id, date),
            )
        return cur.rowcount > 0
