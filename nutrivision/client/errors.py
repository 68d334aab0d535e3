# -*- coding: utf-8 -*-
"""Client — typed error taxonomy."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class TransportErrorKind(str, Enum):
    html_error_page = "html-error-page"
    invalid_json = "invalid-json"
    network_unreachable = "network-unreachable"


class AuthErrorKind(str, Enum):
    expired_or_invalid = "expired-or-invalid"
    missing_token = "missing-token"


class IntegrationErrorKind(str, Enum):
    provider_unavailable = "provider-unavailable"
    consent_timeout = "consent-timeout"
    consent_rejected = "consent-rejected"


class NutriVisionError(Exception):
    """Base class; `str(exc)` is always a human-readable hint."""


class TransportError(NutriVisionError):
    """The backend was unreachable or answered with something that is not JSON."""

    def __init__(
        self,
        kind: TransportErrorKind,
        message: str,
        *,
        status: Optional[int] = None,
        excerpt: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status = status
        self.excerpt = excerpt


class AuthError(NutriVisionError):
    def __init__(self, kind: AuthErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class ApiError(NutriVisionError):
    """Well-formed failure reported by the server."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


class IntegrationError(NutriVisionError):
    def __init__(self, kind: IntegrationErrorKind, message: str, *, provider: Optional[str] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.provider = provider


class EnvelopeError(NutriVisionError):
    """A 2xx response whose envelope reports failure or lacks the expected fields."""

    def __init__(self, message: str, *, envelope: Optional[dict] = None) -> None:
        super().__init__(message)
        self.message = message
        self.envelope = envelope
