# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from starchain.config import DB_PATH
from starchain.errors import StoreUnavailable

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------
# SQLITE PERSISTENCE
# -------------------------------------------------------------------

class BlockStore:
    """Ordered key-value store: integer height -> serialized block."""

    def __init__(self, path: str = DB_PATH):
        self.path = path
        self._lock = threading.Lock()
        try:
            if path != ":memory:":
                Path(path).parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(path, check_same_thread=False)
            self.conn.execute("PRAGMA journal_mode=WAL;")
            self._init()
        except (sqlite3.Error, OSError) as e:
            raise StoreUnavailable(f"cannot open block store at {path}: {e}") from e

    def _init(self) -> None:
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS blocks (
                height INTEGER PRIMARY KEY,
                value TEXT NOT NULL
            );
            """
        )
        self.conn.commit()

    def put(self, height: int, value: str) -> None:
        with self._lock:
            try:
                self.conn.execute(
                    "INSERT OR REPLACE INTO blocks(height, value) VALUES (?, ?);",
                    (int(height), value),
                )
                self.conn.commit()
            except sqlite3.Error as e:
                raise StoreUnavailable(f"put failed for key {height}: {e}") from e

    def get(self, height: int) -> Optional[str]:
        with self._lock:
            try:
                r = self.conn.execute("SELECT value FROM blocks WHERE height = ?;", (int(height),)).fetchone()
            except sqlite3.Error as e:
                raise StoreUnavailable(f"get failed for key {height}: {e}") from e
        return r[0] if r else None

    def key_count(self) -> int:
        with self._lock:
            try:
                r = self.conn.execute("SELECT COUNT(1) FROM blocks;").fetchone()
            except sqlite3.Error as e:
                raise StoreUnavailable(f"key count failed: {e}") from e
        return int(r[0]) if r else 0

    def scan_all(self) -> Iterator[Tuple[int, str]]:
        """One-shot scan of every (height, value) pair in key order."""
        with self._lock:
            try:
                rows: List[Tuple[int, str]] = self.conn.execute(
                    "SELECT height, value FROM blocks ORDER BY height ASC;"
                ).fetchall()
            except sqlite3.Error as e:
                raise StoreUnavailable(f"scan failed: {e}") from e
        return iter([(int(h), v) for h, v in rows])

    def close(self) -> None:
        with self._lock:
            self.conn.close()
