# database/versioning.py
import sqlite3

from ..constants import TABLE_SCHEMA_VERSION

_CREATE = f"""
    CREATE TABLE IF NOT EXISTS {TABLE_SCHEMA_VERSION}(
        id INTEGER PRIMARY KEY CHECK (id=1),
        version TEXT NOT NULL
    );
"""


def get_current_version(conn: sqlite3.Connection) -> str | None:
    """Schema version stamped on this DB, or None for a fresh/unstamped file."""
    conn.execute(_CREATE)
    row = conn.execute(f"SELECT version FROM {TABLE_SCHEMA_VERSION} WHERE id=1;").fetchone()
    return row[0] if row else None


def set_current_version(conn: sqlite3.Connection, version: str) -> None:
    conn.execute(_CREATE)
    conn.execute(
        f"INSERT INTO {TABLE_SCHEMA_VERSION}(id, version) VALUES (1, ?) "
        "ON CONFLICT(id) DO UPDATE SET version = excluded.version;",
        (version,),
    )
    conn.commit()
