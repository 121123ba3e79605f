# database/__init__.py
from __future__ import annotations

import logging
from pathlib import Path
import sqlite3

from ..constants import SCHEMA_VERSION
from . import schema as schema_module
from .versioning import get_current_version, set_current_version

_log = logging.getLogger(__name__)


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """
    Returns a sqlite3.Connection with:
      - WAL mode (file databases only)
      - foreign_keys ON
      - row_factory = sqlite3.Row (so rows behave like dicts and tuples)
    Ensures the schema is applied idempotently.

    `db_path` defaults to config.DB_PATH; pass ":memory:" for a throwaway store.
    """
    if db_path is None:
        from ..config import DB_PATH
        db_path = DB_PATH

    in_memory = str(db_path) == ":memory:"
    if not in_memory:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    if not in_memory:
        conn.execute("PRAGMA journal_mode = WAL;")

    # Always apply the schema (idempotent: CREATE IF NOT EXISTS + guarded migrations)
    schema_module.apply_schema(conn)

    if get_current_version(conn) != SCHEMA_VERSION:
        _log.info("Recording schema version %s for %s", SCHEMA_VERSION, db_path)
        set_current_version(conn, SCHEMA_VERSION)

    return conn


__all__ = [
    "get_connection",
]
