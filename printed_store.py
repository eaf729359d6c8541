"""SQLite-backed record of which fulfillments have had their packing slips printed."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Iterable, Optional, Set

logger = logging.getLogger(__name__)

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS printed_orders (
    tranid TEXT PRIMARY KEY,
    printed_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""


class PrintedStore:
    """
    Key-presence store keyed by fulfillment id.

    The connection is opened explicitly (or by entering a with-block) and stays
    open until close(); nothing is shared at module level.
    """

    def __init__(self, db_path) -> None:
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None

    def open(self) -> "PrintedStore":
        if self._conn is None:
            if str(self.db_path) != ":memory:":
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.execute(CREATE_TABLE_SQL)
            self._conn.commit()
            logger.debug("Opened printed-status store at %s", self.db_path)
        return self

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "PrintedStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("PrintedStore is not open")
        return self._conn

    def get_all(self) -> Set[str]:
        cursor = self.conn.execute("SELECT tranid FROM printed_orders ORDER BY printed_at DESC")
        return {row[0] for row in cursor.fetchall()}

    def mark_many(self, tranids: Iterable[str]) -> int:
        rows = [(tranid,) for tranid in dict.fromkeys(tranids) if tranid]
        if not rows:
            return 0
        with self.conn:
            self.conn.executemany("INSERT OR IGNORE INTO printed_orders (tranid) VALUES (?)", rows)
        logger.info("Marked %d order(s) as printed", len(rows))
        return len(rows)

    def unmark_many(self, tranids: Iterable[str]) -> int:
        rows = [(tranid,) for tranid in dict.fromkeys(tranids) if tranid]
        if not rows:
            return 0
        with self.conn:
            self.conn.executemany("DELETE FROM printed_orders WHERE tranid = ?", rows)
        logger.info("Unmarked %d order(s)", len(rows))
        return len(rows)

    def clear_all(self) -> None:
        with self.conn:
            self.conn.execute("DELETE FROM printed_orders")
        logger.info("Cleared all printed marks")
