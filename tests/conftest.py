# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - Every test gets its own temp-file SQLite DB built by get_connection()
#   (schema + migrations applied, foreign_keys ON, row_factory = Row)
# - pytest-qt owns QApplication (use qapp/qtbot fixtures)
# - Small factories for customers/products keep tests readable
# ---------------------------------------------------------------------

from __future__ import annotations

import os
import sqlite3

import pytest

from dairy_ledger.database import get_connection

# headless runs (CI, containers) have no display server
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


# ---------- Qt: let pytest-qt own the app ----------
@pytest.fixture(scope="session")
def app(qapp):  # alias to match code that expects an `app` fixture
    return qapp


# ---------- Per-test database ----------
@pytest.fixture()
def db_path(tmp_path):
    return tmp_path / "ledger.db"


@pytest.fixture()
def conn(db_path):
    con = get_connection(db_path)
    try:
        yield con
    finally:
        con.close()


# ---------- Factories ----------
@pytest.fixture()
def make_customer(conn: sqlite3.Connection):
    def _make(name: str = "Asha") -> int:
        cur = conn.execute("INSERT INTO customers(name) VALUES (?)", (name,))
        conn.commit()
        return int(cur.lastrowid)
    return _make


@pytest.fixture()
def make_product(conn: sqlite3.Connection):
    def _make(name: str = "Milk", unit: str = "litre", base_price: float = 50.0) -> int:
        cur = conn.execute(
            "INSERT INTO products(name, unit, base_price) VALUES (?, ?, ?)",
            (name, unit, base_price),
        )
        conn.commit()
        return int(cur.lastrowid)
    return _make


# ---------- Handy lookups ----------
@pytest.fixture()
def count_rows(conn: sqlite3.Connection):
    def _count(table: str, where: str = "1=1", *params) -> int:
        return int(conn.execute(f"SELECT COUNT(*) FROM {table} WHERE {where}", params).fetchone()[0])
    return _count
