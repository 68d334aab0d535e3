# -*- coding: utf-8 -*-
"""Client — envelope checks shared by login, register and OAuth exchange."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import ValidationError

from .errors import EnvelopeError
from .models import AuthPayload, Envelope, Session
from .session import SessionStore


def parse_envelope(data: Any) -> Envelope:
    if not isinstance(data, dict):
        raise EnvelopeError("Invalid response from server")
    try:
        return Envelope.model_validate(data)
    except ValidationError as exc:
        raise EnvelopeError("Invalid response from server", envelope=data) from exc


def establish_session(session: SessionStore, data: Any, *, provider: Optional[str] = None) -> Session:
    """Validate a login-style envelope and replace the session with its token/user pair."""
    envelope = parse_envelope(data)
    if not envelope.success or envelope.data is None:
        raise EnvelopeError(envelope.failure_message("Invalid response from server"), envelope=data)
    try:
        payload = AuthPayload.model_validate(envelope.data)
    except ValidationError as exc:
        raise EnvelopeError("Invalid response from server: missing token or user", envelope=data) from exc
    profile = payload.user
    if provider and profile.provider == "local":
        profile = profile.model_copy(update={"provider": provider})
    return session.set(payload.token, profile)
