# -*- coding: utf-8 -*-
"""App database (users/meals) — SQLite helpers and the startup probe.

The backend runs without a database when the probe fails; `DatabaseStatus`
is the flag handlers consult to pick SQLite or in-memory storage.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatabaseStatus:
    path: Optional[Path]
    connected: bool
    error: Optional[str] = None

    @property
    def label(self) -> str:
        return "connected" if self.connected else "disconnected"

    @property
    def mode(self) -> str:
        return "sqlite" if self.connected else "in-memory"


def connect(db_path: Path, timeout: float = 5.0) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), timeout=timeout, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def init_app_db(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE,
            password_hash TEXT,
            provider TEXT NOT NULL,
            created_at TEXT NOT NULL
        );
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS meals (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            payload_json TEXT NOT NULL,
            calories_kcal REAL NOT NULL DEFAULT 0,
            eaten_at TEXT NOT NULL,
            created_at TEXT NOT NULL,
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
        );
        """
    )
    cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_meals_user_eaten ON meals(user_id, eaten_at DESC);"
    )
    conn.commit()


def try_connect(db_path: Path, timeout: float = 5.0) -> DatabaseStatus:
    """Single bounded connection attempt; never raises."""
    try:
        conn = connect(db_path, timeout=timeout)
        try:
            init_app_db(conn)
            conn.execute("SELECT 1").fetchone()
        finally:
            conn.close()
    except (sqlite3.Error, OSError) as exc:
        log.warning("database connection failed (%s): %s", db_path, exc)
        return DatabaseStatus(path=db_path, connected=False, error=str(exc))
    return DatabaseStatus(path=db_path, connected=True)


@contextmanager
def db_conn(db_path: Path) -> Iterator[sqlite3.Connection]:
    conn = connect(db_path)
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()
