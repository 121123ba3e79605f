# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from dairy_ledger.database.repositories import (
        CustomersRepo, Customer, CustomersDomainError,
        ProductsRepo, Product, ProductNotFound, ProductsDomainError,
        PricesRepo,
        SalesRepo, SaleLine, SalesDomainError,
        InventoryRepo, InventoryDomainError,
        PaymentsRepo, Payment, PaymentsDomainError,
    )
"""

# ---------------- Customers ----------------
from .customers_repo import (
    CustomersRepo,
    Customer,
    DomainError as CustomersDomainError,
)

# ---------------- Products -----------------
from .products_repo import (
    ProductsRepo,
    Product,
    ProductNotFound,
    DomainError as ProductsDomainError,
)

# ----------------- Prices ------------------
from .prices_repo import PricesRepo

# ------------------ Sales ------------------
from .sales_repo import SalesRepo, SaleLine, DomainError as SalesDomainError

# ---------------- Inventory ----------------
from .inventory_repo import InventoryRepo, DomainError as InventoryDomainError

# ---------------- Payments -----------------
from .payments_repo import PaymentsRepo, Payment, DomainError as PaymentsDomainError

__all__ = [
    # customers_repo
    "CustomersRepo",
    "Customer",
    "CustomersDomainError",
    # products_repo / prices_repo
    "ProductsRepo",
    "Product",
    "ProductNotFound",
    "ProductsDomainError",
    "PricesRepo",
    # sales
    "SalesRepo",
    "SaleLine",
    "SalesDomainError",
    # inventory
    "InventoryRepo",
    "InventoryDomainError",
    # payments
    "PaymentsRepo",
    "Payment",
    "PaymentsDomainError",
]
