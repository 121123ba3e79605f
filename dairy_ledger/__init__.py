# dairy_ledger/__init__.py
"""Dairy distribution ledger: products, customers, daily sales and stock."""

__version__ = "0.1.0"
