# -*- coding: utf-8 -*-
"""Auth — user storage (SQLite when the database is up, process memory otherwise)."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

from ..app_db import DatabaseStatus, db_conn


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _new_user(*, name: str, email: str, password_hash: Optional[str], provider: str) -> Dict[str, Any]:
    return {
        "id": str(uuid4()),
        "name": name.strip(),
        "email": email.lower().strip(),
        "password_hash": password_hash,
        "provider": provider,
        "created_at": _utc_now(),
    }


class SqliteUserStorage:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        with db_conn(self.db_path) as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email.lower().strip(),)).fetchone()
            return dict(row) if row else None

    def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        with db_conn(self.db_path) as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            return dict(row) if row else None

    def create_user(self, *, name: str, email: str, password_hash: Optional[str], provider: str = "local") -> Dict[str, Any]:
        user = _new_user(name=name, email=email, password_hash=password_hash, provider=provider)
        with db_conn(self.db_path) as conn:
            conn.execute(
                "INSERT INTO users (id, name, email, password_hash, provider, created_at) VALUES (?, ?, ?, ?, ?, ?)",
                (user["id"], user["name"], user["email"], user["password_hash"], user["provider"], user["created_at"]),
            )
        return user


class MemoryUserStorage:
    def __init__(self) -> None:
        self._users: Dict[str, Dict[str, Any]] = {}

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        email_norm = email.lower().strip()
        for user in self._users.values():
            if user["email"] == email_norm:
                return dict(user)
        return None

    def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        user = self._users.get(user_id)
        return dict(user) if user else None

    def create_user(self, *, name: str, email: str, password_hash: Optional[str], provider: str = "local") -> Dict[str, Any]:
        user = _new_user(name=name, email=email, password_hash=password_hash, provider=provider)
        self._users[user["id"]] = user
        return dict(user)


def make_user_storage(status: DatabaseStatus):
    if status.connected and status.path is not None:
        return SqliteUserStorage(status.path)
    return MemoryUserStorage()
