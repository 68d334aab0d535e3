# -*- coding: utf-8 -*-
"""Auth — password hashing + JWT + FastAPI helpers."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request

from ..config import settings

# Password hashing (stdlib pbkdf2_hmac).
_PBKDF2_ALG = "sha256"
_PBKDF2_ITERATIONS = 200_000


def hash_password(password: str) -> str:
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac(_PBKDF2_ALG, password.encode("utf-8"), salt, _PBKDF2_ITERATIONS)
    return f"pbkdf2_{_PBKDF2_ALG}${_PBKDF2_ITERATIONS}${_b64url_encode(salt)}${_b64url_encode(dk)}"


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        # OAuth-created accounts have no local password.
        return False
    try:
        scheme, iter_s, salt_b64, dk_b64 = password_hash.split("$", 3)
        if not scheme.startswith("pbkdf2_"):
            return False
        alg = scheme.split("_", 1)[1]
        iterations = int(iter_s)
        salt = _b64url_decode(salt_b64)
        expected = _b64url_decode(dk_b64)
        actual = hashlib.pbkdf2_hmac(alg, password.encode("utf-8"), salt, iterations)
        return hmac.compare_digest(actual, expected)
    except (ValueError, TypeError):
        return False


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(*, user_id: str, email: str, secret: Optional[str] = None) -> str:
    now = _utc_now()
    exp = now + timedelta(days=int(settings.token_ttl_days))
    payload = {
        "sub": user_id,
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return _jwt_encode(payload, secret or settings.jwt_secret)


def decode_token(token: str, secret: Optional[str] = None) -> Dict[str, Any]:
    try:
        payload = _jwt_decode(token, secret or settings.jwt_secret)
    except (ValueError, UnicodeError) as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc
    exp = int(payload.get("exp") or 0)
    if exp and exp < int(_utc_now().timestamp()):
        raise HTTPException(status_code=401, detail="Token expired")
    return payload


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64url_decode(data: str) -> bytes:
    pad = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode((data + pad).encode("ascii"))


def _jwt_encode(payload: Dict[str, Any], secret: str) -> str:
    header = {"alg": "HS256", "typ": "JWT"}
    header_b64 = _b64url_encode(json.dumps(header, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))
    payload_b64 = _b64url_encode(json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
    sig = hmac.new(secret.encode("utf-8"), signing_input, hashlib.sha256).digest()
    return f"{header_b64}.{payload_b64}.{_b64url_encode(sig)}"


def _jwt_decode(token: str, secret: str) -> Dict[str, Any]:
    parts = token.split(".")
    if len(parts) != 3:
        raise ValueError("invalid token")
    header_b64, payload_b64, sig_b64 = parts
    signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
    expected_sig = hmac.new(secret.encode("utf-8"), signing_input, hashlib.sha256).digest()
    actual_sig = _b64url_decode(sig_b64)
    if not hmac.compare_digest(expected_sig, actual_sig):
        raise ValueError("bad signature")
    payload = json.loads(_b64url_decode(payload_b64).decode("utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("bad payload")
    return payload


def get_token_from_request(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        token = auth.split(" ", 1)[1].strip()
        return token or None
    return None


def get_current_user_from_request(request: Request) -> Dict[str, Any]:
    user = getattr(request.state, "user", None)
    if user:
        return user

    token = get_token_from_request(request)
    if not token:
        raise HTTPException(status_code=401, detail="No token provided")

    payload = decode_token(token)
    user_id = str(payload.get("sub") or "")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")

    user_row = request.app.state.users.get_user_by_id(user_id)
    if not user_row:
        # In-memory users vanish on restart; the client must log in again.
        raise HTTPException(status_code=401, detail="User not found")

    request.state.user = user_row
    return user_row


def get_current_user(user: Dict[str, Any] = Depends(get_current_user_from_request)) -> Dict[str, Any]:
    return user
