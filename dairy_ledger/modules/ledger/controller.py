# dairy_ledger/modules/ledger/controller.py
from __future__ import annotations

import logging
import sqlite3
from typing import Callable, Iterable, Mapping, Optional, TypeVar

from PySide6.QtCore import QObject, Signal

from ...constants import LOW_STOCK_THRESHOLD
from ...database.repositories.customers_repo import Customer, CustomersRepo
from ...database.repositories.inventory_repo import InventoryRepo
from ...database.repositories.payments_repo import PaymentsRepo
from ...database.repositories.prices_repo import PricesRepo
from ...database.repositories.products_repo import Product, ProductsRepo
from ...database.repositories.sales_repo import SaleLine, SalesRepo

_log = logging.getLogger(__name__)

T = TypeVar("T")


class LedgerController(QObject):
    """
    Command/query surface the screens talk to.

    Owns the repositories over one connection. Writes are blocking; when one
    finishes the matching signal fires so open views can reload:
      - sale_saved(customer_id, date, sale_id)
      - incoming_saved(date, entry_count)
      - catalog_changed(): customers/products/prices changed
      - operation_failed(op, message): emitted before the error is re-raised
    """

    sale_saved = Signal(int, str, int)
    incoming_saved = Signal(str, int)
    catalog_changed = Signal()
    operation_failed = Signal(str, str)

    def __init__(self, conn: sqlite3.Connection, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.conn = conn
        self.customers = CustomersRepo(conn)
        self.products = ProductsRepo(conn)
        self.prices = PricesRepo(conn)
        self.sales = SalesRepo(conn)
        self.inventory = InventoryRepo(conn)
        self.payments = PaymentsRepo(conn)

    # ---------------------------- plumbing ----------------------------

    def _run(self, op: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except Exception as e:
            _log.error("%s failed: %s", op, e)
            self.operation_failed.emit(op, str(e))
            raise

    # ---------------------------- queries ----------------------------

    def list_products(self) -> list[Product]:
        return self.products.list_products()

    def list_customers(self) -> list[Customer]:
        return self.customers.list_customers()

    def resolve_price(self, customer_id: int, product_id: int) -> float:
        return self.prices.resolve_price(customer_id, product_id)

    def current_stock_per_product(self) -> list[dict]:
        return self.inventory.current_stock_per_product()

    def leftover_as_of(self, date: str) -> list[dict]:
        return self.inventory.leftover_as_of(date)

    def inventory_summary(self, threshold: float = LOW_STOCK_THRESHOLD) -> dict:
        return self.inventory.inventory_summary(threshold)

    def entry_sheet(self, customer_id: int, date: str) -> list[dict]:
        return self.sales.entry_sheet(customer_id, date)

    def incoming_prefill(self, date: str) -> list[dict]:
        return self.inventory.incoming_prefill(date)

    # ---------------------------- commands ----------------------------

    def upsert_daily_sale(
        self,
        customer_id: int,
        date: str,
        items: Iterable[SaleLine | tuple | Mapping],
    ) -> int:
        sale_id = self._run(
            "upsert_daily_sale",
            lambda: self.sales.upsert_daily_sale(customer_id, date, items),
        )
        self.sale_saved.emit(int(customer_id), date, int(sale_id))
        return sale_id

    def save_day_quantities(
        self,
        customer_id: int,
        date: str,
        quantities: Mapping[int, float],
        prices: Optional[Mapping[int, float]] = None,
    ) -> int:
        """
        Form path: price each non-zero quantity, then upsert the day.
        `prices` (usually taken from entry_sheet) pins the rate per product.
        """
        lines = self._run(
            "save_day_quantities",
            lambda: self.sales.build_lines(customer_id, quantities, prices),
        )
        return self.upsert_daily_sale(customer_id, date, lines)

    def upsert_incoming(self, date: str, entries: Iterable) -> tuple[int, int]:
        entries = list(entries)
        counts = self._run(
            "upsert_incoming",
            lambda: self.inventory.upsert_incoming(date, entries),
        )
        self.incoming_saved.emit(date, len(entries))
        return counts

    def create_customer(self, name: str) -> int:
        cid = self._run("create_customer", lambda: self.customers.create(name))
        self.catalog_changed.emit()
        return cid

    def update_customer(self, customer_id: int, name: str) -> None:
        self._run("update_customer", lambda: self.customers.update(customer_id, name))
        self.catalog_changed.emit()

    def delete_customer(self, customer_id: int) -> None:
        self._run("delete_customer", lambda: self.customers.delete(customer_id))
        self.catalog_changed.emit()

    def create_product(self, name: str, unit: str, base_price: float) -> int:
        pid = self._run("create_product", lambda: self.products.create(name, unit, base_price))
        self.catalog_changed.emit()
        return pid

    def update_product(self, product_id: int, name: str, unit: str, base_price: float) -> None:
        self._run(
            "update_product",
            lambda: self.products.update(product_id, name, unit, base_price),
        )
        self.catalog_changed.emit()

    def archive_product(self, product_id: int) -> None:
        self._run("archive_product", lambda: self.products.deactivate(product_id))
        self.catalog_changed.emit()

    def reactivate_product(self, product_id: int) -> None:
        self._run("reactivate_product", lambda: self.products.reactivate(product_id))
        self.catalog_changed.emit()

    def delete_product(self, product_id: int) -> None:
        self._run("delete_product", lambda: self.products.delete(product_id))
        self.catalog_changed.emit()

    def set_custom_price(self, customer_id: int, product_id: int, price: float) -> None:
        self._run(
            "set_custom_price",
            lambda: self.prices.set_custom_price(customer_id, product_id, price),
        )
        self.catalog_changed.emit()

    def clear_custom_price(self, customer_id: int, product_id: int) -> None:
        self._run(
            "clear_custom_price",
            lambda: self.prices.clear_custom_price(customer_id, product_id),
        )
        self.catalog_changed.emit()

    def record_payment(self, customer_id: int, amount: float, date: str) -> int:
        return self._run(
            "record_payment",
            lambda: self.payments.record_payment(customer_id, amount, date),
        )
