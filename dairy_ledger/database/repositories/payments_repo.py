from __future__ import annotations
from dataclasses import dataclass
import sqlite3

from ...utils.helpers import is_iso_date
from ...utils.validators import try_parse_float
from .tx_helpers import immediate_tx


class DomainError(Exception):
    pass


@dataclass
class Payment:
    id: int | None
    customer_id: int
    amount: float
    date: str


class PaymentsRepo:
    """
    Flat log of money received per customer and day.
    Payments are not allocated against sales and no balance is derived here.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def record_payment(self, customer_id: int, amount: float, date: str) -> int:
        ok, val = try_parse_float(amount)
        if not ok:
            raise DomainError(f"Amount must be a number, got {amount!r}.")
        if not is_iso_date(date):
            raise DomainError(f"Date must be YYYY-MM-DD, got {date!r}.")
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "INSERT INTO payments(customer_id, amount, date) VALUES (?, ?, ?)",
                (customer_id, val, date),
            )
            return int(cur.lastrowid)

    def list_for_customer(
        self,
        customer_id: int,
        date_from: str | None = None,   # inclusive 'YYYY-MM-DD'
        date_to: str | None = None,     # inclusive 'YYYY-MM-DD'
    ) -> list[Payment]:
        where = ["customer_id = ?"]
        params: list = [customer_id]
        if date_from:
            where.append("date >= ?")
            params.append(date_from)
        if date_to:
            where.append("date <= ?")
            params.append(date_to)
        sql = (
            "SELECT id, customer_id, CAST(amount AS REAL) AS amount, date FROM payments "
            "WHERE " + " AND ".join(where) + " ORDER BY date DESC, id DESC"
        )
        return [Payment(**r) for r in self.conn.execute(sql, params).fetchall()]

    def delete(self, payment_id: int) -> None:
        with immediate_tx(self.conn):
            self.conn.execute("DELETE FROM payments WHERE id=?", (payment_id,))
