# dairy_ledger/database/repositories/products_repo.py
from dataclasses import dataclass
import logging
import sqlite3

from ...utils.validators import non_empty, try_parse_float
from .tx_helpers import immediate_tx

_log = logging.getLogger(__name__)


class DomainError(Exception):
    """Domain-level error the controller/UI can surface (toast/snackbar)."""
    pass


class ProductNotFound(DomainError):
    pass


@dataclass
class Product:
    id: int | None
    name: str
    unit: str
    base_price: float
    is_active: int = 1


class ProductsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        # Use Row for named access; we normalize to dicts where we claim to return dicts.
        self.conn.row_factory = sqlite3.Row

    # ---------------------------- Validation ----------------------------

    @staticmethod
    def _clean(name: str, unit: str, base_price) -> tuple[str, str, float]:
        if not non_empty(name):
            raise DomainError("Name cannot be empty.")
        if not non_empty(unit):
            raise DomainError("Unit cannot be empty.")
        ok, price = try_parse_float(base_price)
        if not ok or price < 0:
            raise DomainError(f"Base price must be a non-negative number, got {base_price!r}.")
        return name.strip(), unit.strip(), price

    # ---------------------------- Products ----------------------------

    def list_products(self, active_only: bool = True) -> list[Product]:
        """
        Products ordered by name. Archived (is_active=0) rows are hidden
        unless active_only=False.
        """
        sql = (
            "SELECT id, name, unit, CAST(base_price AS REAL) AS base_price, is_active "
            "FROM products "
        )
        if active_only:
            sql += "WHERE is_active = 1 "
        sql += "ORDER BY name COLLATE NOCASE, id"
        return [Product(**r) for r in self.conn.execute(sql).fetchall()]

    def get(self, product_id: int) -> Product | None:
        r = self.conn.execute(
            "SELECT id, name, unit, CAST(base_price AS REAL) AS base_price, is_active "
            "FROM products WHERE id=?",
            (product_id,),
        ).fetchone()
        return Product(**r) if r else None

    def require(self, product_id: int) -> Product:
        p = self.get(product_id)
        if p is None:
            raise ProductNotFound(f"Product {product_id} does not exist.")
        return p

    def create(self, name: str, unit: str, base_price: float) -> int:
        name_n, unit_n, price = self._clean(name, unit, base_price)
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "INSERT INTO products(name, unit, base_price) VALUES (?, ?, ?)",
                (name_n, unit_n, price),
            )
            return int(cur.lastrowid)

    def update(self, product_id: int, name: str, unit: str, base_price: float) -> None:
        """
        Changing base_price never touches sale_items.price_used; history keeps
        the price captured at the time of sale.
        """
        name_n, unit_n, price = self._clean(name, unit, base_price)
        with immediate_tx(self.conn):
            self.conn.execute(
                "UPDATE products SET name=?, unit=?, base_price=? WHERE id=?",
                (name_n, unit_n, price, product_id),
            )

    def _product_is_referenced(self, product_id: int) -> bool:
        """
        Check referencing tables that do NOT have ON DELETE CASCADE.
        If any reference exists, deletion would either fail or orphan business data.
        """
        checks = [
            "SELECT 1 FROM sale_items WHERE product_id=? LIMIT 1",
            "SELECT 1 FROM inventory  WHERE product_id=? LIMIT 1",
        ]
        for sql in checks:
            if self.conn.execute(sql, (product_id,)).fetchone():
                return True
        return False

    def deactivate(self, product_id: int) -> None:
        """Soft-delete: hide from listings and stock views, keep history intact."""
        with immediate_tx(self.conn):
            self.conn.execute("UPDATE products SET is_active=0 WHERE id=?", (product_id,))

    def reactivate(self, product_id: int) -> None:
        with immediate_tx(self.conn):
            self.conn.execute("UPDATE products SET is_active=1 WHERE id=?", (product_id,))

    def delete(self, product_id: int) -> None:
        """
        Safer delete: disallow if referenced by sales or incoming stock.
        Use deactivate() for products that already carry history.
        """
        if self._product_is_referenced(product_id):
            raise DomainError(
                "Cannot delete product: it has sales or incoming stock recorded. "
                "Archive it instead."
            )
        with immediate_tx(self.conn):
            self.conn.execute("DELETE FROM products WHERE id=?", (product_id,))
        _log.info("Deleted product %s", product_id)
