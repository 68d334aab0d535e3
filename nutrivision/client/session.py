# -*- coding: utf-8 -*-
"""Client — the single active session (bearer token + user profile).

Token and profile live in one immutable `Session` object, so a transition is
a single reference swap: readers see either the old pair, the new pair, or
nothing. There is no patch operation.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .models import Session, UserProfile

log = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path
        self._session: Optional[Session] = None
        if path is not None:
            self._session = self._load(path)

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def get(self) -> Optional[Session]:
        return self._session

    def token(self) -> Optional[str]:
        session = self._session
        return session.token if session else None

    def set(self, token: str, profile: UserProfile) -> Session:
        if not token:
            raise ValueError("session token must be a non-empty string")
        if not isinstance(profile, UserProfile):
            raise ValueError("session requires a user profile")
        session = Session(token=token, profile=profile)
        if self._path is not None:
            self._write(self._path, session)
        self._session = session
        return session

    def clear(self) -> None:
        self._session = None
        if self._path is not None:
            try:
                self._path.unlink()
            except FileNotFoundError:
                pass
            except OSError as exc:
                # The in-memory session is already gone; a stale file is only logged.
                log.warning("could not remove session file %s: %s", self._path, exc)

    @staticmethod
    def _load(path: Path) -> Optional[Session]:
        if not path.exists():
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return Session.model_validate(raw)
        except (OSError, ValueError, ValidationError) as exc:
            # A half-written or partial file must never yield a token without a profile.
            log.warning("discarding unreadable session file %s: %s", path, exc)
            try:
                path.unlink()
            except OSError:
                pass
            return None

    @staticmethod
    def _write(path: Path, session: Session) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(session.model_dump_json(), encoding="utf-8")
        os.replace(tmp, path)
