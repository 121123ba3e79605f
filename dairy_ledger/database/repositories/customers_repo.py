from __future__ import annotations
from dataclasses import dataclass
import sqlite3

from .tx_helpers import immediate_tx


# Domain-level error the controller can surface directly (e.g., toast/snackbar)
class DomainError(Exception):
    pass


@dataclass
class Customer:
    id: int | None
    name: str


class CustomersRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ---- Internal helpers -------------------------------------------------

    @staticmethod
    def _normalize_text(s: str | None) -> str | None:
        if s is None:
            return None
        return s.strip()

    @staticmethod
    def _ensure_non_empty(value: str | None, field_label: str) -> None:
        if value is None or value.strip() == "":
            raise DomainError(f"{field_label} cannot be empty.")

    # ---- Queries ----------------------------------------------------------

    def list_customers(self) -> list[Customer]:
        rows = self.conn.execute(
            "SELECT id, name FROM customers ORDER BY name COLLATE NOCASE, id"
        ).fetchall()
        return [Customer(**r) for r in rows]

    def search(self, term: str) -> list[Customer]:
        """
        Matches id or name using LIKE.
        """
        pattern = f"%{term.strip()}%"
        rows = self.conn.execute(
            "SELECT id, name FROM customers "
            "WHERE CAST(id AS TEXT) LIKE ? OR name LIKE ? "
            "ORDER BY name COLLATE NOCASE, id",
            (pattern, pattern),
        ).fetchall()
        return [Customer(**r) for r in rows]

    def get(self, customer_id: int) -> Customer | None:
        r = self.conn.execute(
            "SELECT id, name FROM customers WHERE id=?",
            (customer_id,),
        ).fetchone()
        return Customer(**r) if r else None

    # ---- Mutations --------------------------------------------------------

    def create(self, name: str) -> int:
        self._ensure_non_empty(name, "Name")
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "INSERT INTO customers(name) VALUES (?)",
                (self._normalize_text(name),),
            )
            return int(cur.lastrowid)

    def update(self, customer_id: int, name: str) -> None:
        self._ensure_non_empty(name, "Name")
        with immediate_tx(self.conn):
            self.conn.execute(
                "UPDATE customers SET name=? WHERE id=?",
                (self._normalize_text(name), customer_id),
            )

    def delete(self, customer_id: int) -> None:
        """Cascades to the customer's prices, sales (and their items) and payments."""
        with immediate_tx(self.conn):
            self.conn.execute("DELETE FROM customers WHERE id=?", (customer_id,))
