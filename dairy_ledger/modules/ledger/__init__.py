# dairy_ledger/modules/ledger/__init__.py

from .controller import LedgerController

__all__ = [
    "LedgerController",
]
