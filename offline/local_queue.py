"""
Client-resident write-ahead buffer.

Pending thought writes are kept in a SQLite file so they survive process
restarts. The store is append / drain / clear only: records are never
edited or deleted one by one.
"""
import json
import logging
import os
import re
import sqlite3
from contextlib import closing, contextmanager
from typing import Any, Dict, List, Optional

from errors import StorageFault

logger = logging.getLogger(__name__)

STORE_NAME = "new_pizza"
# Bump when the table layout changes; opening an older store re-creates it.
SCHEMA_VERSION = 1
DEFAULT_PATH = "new_pizza.sqlite3"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class LocalQueue:
    """Durable FIFO of JSON write intents.

    Args:
        path: SQLite file. Defaults to $OFFLINE_QUEUE_PATH or ./new_pizza.sqlite3.
        store_name: table holding the records.
        version: schema version recorded in PRAGMA user_version.
    """

    def __init__(self, path: Optional[str] = None, store_name: str = STORE_NAME,
                 version: int = SCHEMA_VERSION):
        if not _IDENTIFIER.match(store_name):
            raise ValueError(f"invalid store name: {store_name!r}")
        self.path = str(path or os.getenv("OFFLINE_QUEUE_PATH", DEFAULT_PATH))
        self.store_name = store_name
        self.version = version
        self._initialize()

    @contextmanager
    def _connect(self):
        try:
            with closing(sqlite3.connect(self.path)) as conn:
                with conn:
                    yield conn
        except sqlite3.Error as e:
            logger.error("Local queue %s at %s unavailable: %s", self.store_name, self.path, e)
            raise StorageFault(f"local queue unavailable: {e}") from e

    def _initialize(self):
        with self._connect() as conn:
            current = conn.execute("PRAGMA user_version").fetchone()[0]
            if current != self.version:
                if current:
                    logger.info("Upgrading local queue %s from v%d to v%d; pending records dropped",
                                self.store_name, current, self.version)
                conn.execute(f"DROP TABLE IF EXISTS {self.store_name}")
            conn.execute(
                f"""CREATE TABLE IF NOT EXISTS {self.store_name} (
                       id INTEGER PRIMARY KEY AUTOINCREMENT,
                       payload TEXT NOT NULL
                   )"""
            )
            conn.execute(f"PRAGMA user_version = {int(self.version)}")

    def append(self, record: Dict[str, Any]) -> None:
        payload = json.dumps(record)
        with self._connect() as conn:
            conn.execute(f"INSERT INTO {self.store_name} (payload) VALUES (?)", (payload,))

    def drain_all(self) -> List[Dict[str, Any]]:
        """All records in insertion order. Nothing is removed."""
        with self._connect() as conn:
            rows = conn.execute(f"SELECT payload FROM {self.store_name} ORDER BY id").fetchall()
        return [json.loads(row[0]) for row in rows]

    def clear(self, keep_after: Optional[int] = None) -> None:
        """Empty the store, or with `keep_after=n` drop only the oldest n records.

        Either form is a single statement, so a fault leaves the store unchanged.
        """
        with self._connect() as conn:
            if keep_after is None:
                conn.execute(f"DELETE FROM {self.store_name}")
            else:
                conn.execute(
                    f"DELETE FROM {self.store_name} WHERE id IN "
                    f"(SELECT id FROM {self.store_name} ORDER BY id LIMIT ?)",
                    (int(keep_after),),
                )

    def __len__(self):
        with self._connect() as conn:
            return conn.execute(f"SELECT COUNT(*) FROM {self.store_name}").fetchone()[0]
