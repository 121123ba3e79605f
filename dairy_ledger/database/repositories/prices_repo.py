# dairy_ledger/database/repositories/prices_repo.py
from __future__ import annotations

import sqlite3

from ...utils.validators import try_parse_float
from .products_repo import DomainError, ProductNotFound
from .tx_helpers import immediate_tx


class PricesRepo:
    """
    Price resolution for (customer, product).

    The effective price is the customer's override from customer_prices when
    one exists, else the product's base_price. Nothing is cached: every call
    reads the store, call volume is bounded by products per sale.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def custom_price(self, customer_id: int, product_id: int) -> float | None:
        """The override for this exact pair, or None if the customer has none."""
        row = self.conn.execute(
            "SELECT CAST(custom_price AS REAL) AS custom_price "
            "FROM customer_prices WHERE customer_id=? AND product_id=?",
            (customer_id, product_id),
        ).fetchone()
        return None if row is None else float(row["custom_price"])

    def resolve_price(self, customer_id: int, product_id: int) -> float:
        """
        Raises ProductNotFound when the product itself does not exist;
        a missing override is not an error.
        """
        row = self.conn.execute(
            """
            SELECT CAST(p.base_price AS REAL)   AS base_price,
                   CAST(cp.custom_price AS REAL) AS custom_price
            FROM products p
            LEFT JOIN customer_prices cp
                   ON cp.product_id = p.id AND cp.customer_id = ?
            WHERE p.id = ?
            """,
            (customer_id, product_id),
        ).fetchone()
        if row is None:
            raise ProductNotFound(f"Product {product_id} does not exist.")
        if row["custom_price"] is not None:
            return float(row["custom_price"])
        return float(row["base_price"])

    def price_list(self, customer_id: int) -> list[dict]:
        """
        Every active product with the price this customer pays.
        Keys: id, name, unit, base_price, effective_price, is_special
        """
        rows = self.conn.execute(
            """
            SELECT p.id, p.name, p.unit,
                   CAST(p.base_price AS REAL)    AS base_price,
                   CAST(cp.custom_price AS REAL) AS custom_price
            FROM products p
            LEFT JOIN customer_prices cp
                   ON cp.product_id = p.id AND cp.customer_id = ?
            WHERE p.is_active = 1
            ORDER BY p.name COLLATE NOCASE, p.id
            """,
            (customer_id,),
        ).fetchall()
        out = []
        for r in rows:
            special = r["custom_price"] is not None
            out.append({
                "id": int(r["id"]),
                "name": r["name"],
                "unit": r["unit"],
                "base_price": float(r["base_price"]),
                "effective_price": float(r["custom_price"] if special else r["base_price"]),
                "is_special": special,
            })
        return out

    # ------------------------------------------------------------------
    # Overrides
    # ------------------------------------------------------------------
    def set_custom_price(self, customer_id: int, product_id: int, price: float) -> None:
        ok, val = try_parse_float(price)
        if not ok or val < 0:
            raise DomainError(f"Custom price must be a non-negative number, got {price!r}.")
        with immediate_tx(self.conn):
            self.conn.execute(
                """
                INSERT INTO customer_prices(customer_id, product_id, custom_price)
                VALUES (?, ?, ?)
                ON CONFLICT(customer_id, product_id)
                DO UPDATE SET custom_price = excluded.custom_price
                """,
                (customer_id, product_id, val),
            )

    def clear_custom_price(self, customer_id: int, product_id: int) -> None:
        with immediate_tx(self.conn):
            self.conn.execute(
                "DELETE FROM customer_prices WHERE customer_id=? AND product_id=?",
                (customer_id, product_id),
            )
