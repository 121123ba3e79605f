from pathlib import Path
import logging
import sqlite3

_log = logging.getLogger(__name__)

SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== CORE TABLES ======================== */

/* -------- parties -------- */
CREATE TABLE IF NOT EXISTS customers (
    id   INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL
);

/* -------- products -------- */
CREATE TABLE IF NOT EXISTS products (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    name       TEXT NOT NULL,
    unit       TEXT NOT NULL,
    base_price REAL NOT NULL CHECK (base_price >= 0),
    /* added via migration for old DBs; present by default for new DBs */
    is_active  INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1))
);

/* -------- per-customer overrides -------- */
CREATE TABLE IF NOT EXISTS customer_prices (
    customer_id  INTEGER NOT NULL,
    product_id   INTEGER NOT NULL,
    custom_price REAL NOT NULL CHECK (custom_price >= 0),
    PRIMARY KEY (customer_id, product_id),
    FOREIGN KEY (customer_id) REFERENCES customers(id) ON DELETE CASCADE,
    FOREIGN KEY (product_id)  REFERENCES products(id)  ON DELETE CASCADE
);

/* -------- daily sales: one header per (customer, date) -------- */
CREATE TABLE IF NOT EXISTS sales (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    customer_id INTEGER NOT NULL,
    date        TEXT    NOT NULL,            /* YYYY-MM-DD */
    total       REAL    NOT NULL DEFAULT 0,
    FOREIGN KEY (customer_id) REFERENCES customers(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_sales_date ON sales(date);

CREATE TABLE IF NOT EXISTS sale_items (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    sale_id    INTEGER NOT NULL,
    product_id INTEGER NOT NULL,
    quantity   REAL    NOT NULL,
    price_used REAL    NOT NULL,             /* historical price, never re-resolved */
    FOREIGN KEY (sale_id)    REFERENCES sales(id)    ON DELETE CASCADE,
    FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE RESTRICT
);
CREATE INDEX IF NOT EXISTS idx_sale_items_sale    ON sale_items(sale_id);
CREATE INDEX IF NOT EXISTS idx_sale_items_product ON sale_items(product_id);

/* -------- payments (flat log, not linked to sales) -------- */
CREATE TABLE IF NOT EXISTS payments (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    customer_id INTEGER NOT NULL,
    amount      REAL    NOT NULL,
    date        TEXT    NOT NULL,            /* YYYY-MM-DD */
    FOREIGN KEY (customer_id) REFERENCES customers(id) ON DELETE CASCADE
);

/* -------- incoming stock: one row per (product, date) -------- */
CREATE TABLE IF NOT EXISTS inventory (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id INTEGER NOT NULL,
    date       TEXT    NOT NULL,             /* YYYY-MM-DD */
    stock_in   REAL    NOT NULL,
    FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE RESTRICT
);
"""

# Natural keys the upsert engines maintain. Created separately so that a
# legacy DB holding duplicates still opens (the index is skipped + logged).
NATURAL_KEY_INDEXES = (
    ("ux_sales_customer_date", "sales", ("customer_id", "date")),
    ("ux_inventory_product_date", "inventory", ("product_id", "date")),
)


def _ensure_product_is_active(conn: sqlite3.Connection) -> None:
    """
    Safe migration for older DBs that created `products` before `is_active` existed.
    Adds the column if missing. No-op if already present.
    """
    cur = conn.execute("PRAGMA table_info(products);")
    cols = {row[1] for row in cur.fetchall()}  # row[1] = name
    if "is_active" not in cols:
        conn.execute(
            "ALTER TABLE products "
            "ADD COLUMN is_active INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1));"
        )


def _ensure_natural_key_indexes(conn: sqlite3.Connection) -> list[str]:
    """
    Create the unique indexes on (customer_id, date) and (product_id, date).
    Returns the names of indexes that could not be created because the
    table already holds duplicate keys.
    """
    skipped: list[str] = []
    for index_name, table, cols in NATURAL_KEY_INDEXES:
        col_list = ", ".join(cols)
        dup = conn.execute(
            f"SELECT 1 FROM {table} GROUP BY {col_list} HAVING COUNT(*) > 1 LIMIT 1"
        ).fetchone()
        if dup:
            _log.warning(
                "Not creating %s: %s has duplicate (%s) rows; merge them first.",
                index_name, table, col_list,
            )
            skipped.append(index_name)
            continue
        conn.execute(
            f"CREATE UNIQUE INDEX IF NOT EXISTS {index_name} ON {table}({col_list})"
        )
    return skipped


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply the (idempotent) schema + migrations on an open connection."""
    conn.executescript(SQL)
    _ensure_product_is_active(conn)
    _ensure_natural_key_indexes(conn)
    conn.commit()


def init_schema(db_path: Path | str = "dairy.db") -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        conn.execute("PRAGMA journal_mode=WAL;")
        apply_schema(conn)
    finally:
        conn.close()
    _log.info("Schema applied to %s", db_path)
