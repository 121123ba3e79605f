# database/repositories/tx_helpers.py
from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from itertools import count

_log = logging.getLogger(__name__)
_savepoint_seq = count(1)


@contextmanager
def immediate_tx(conn: sqlite3.Connection):
    """
    Start an IMMEDIATE transaction (write lock taken up front),
    commit on success, rollback on error.

    If the connection is already inside a transaction (caller-managed batch,
    test fixture), a SAVEPOINT is used instead so the block still rolls back
    as a unit without ending the outer transaction.
    """
    if conn.in_transaction:
        name = f"sp_{next(_savepoint_seq)}"
        conn.execute(f"SAVEPOINT {name}")
        try:
            yield
        except Exception:
            conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
            conn.execute(f"RELEASE SAVEPOINT {name}")
            _log.warning("Rolled back savepoint %s", name)
            raise
        conn.execute(f"RELEASE SAVEPOINT {name}")
        return

    cur = conn.cursor()
    try:
        cur.execute("BEGIN IMMEDIATE")
        yield
        conn.commit()
    except Exception:
        conn.rollback()
        _log.warning("Rolled back transaction")
        raise
    finally:
        cur.close()
