# -*- coding: utf-8 -*-
"""Client — outbound requests and response classification."""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from .errors import ApiError, AuthError, AuthErrorKind, TransportError, TransportErrorKind
from .session import SessionStore

log = logging.getLogger(__name__)

_HTML_MARKERS = ("<!doctype", "<html")
_EXCERPT_CHARS = 100


class BodyKind(str, Enum):
    html_error_page = "html-error-page"
    invalid_json = "invalid-json"
    valid_json = "valid-json"


def is_html_document(raw: str) -> bool:
    head = raw.lstrip()[:16].lower()
    return head.startswith(_HTML_MARKERS)


def excerpt(raw: str, limit: int = _EXCERPT_CHARS) -> str:
    return raw.replace("\n", " ").strip()[:limit]


def classify_body(raw: str) -> tuple[BodyKind, Any]:
    """Return the body kind and, for valid JSON, the parsed value.

    HTML is detected from the raw text alone; the JSON parser only ever sees
    bodies that are not HTML documents.
    """
    if is_html_document(raw):
        return BodyKind.html_error_page, None
    try:
        return BodyKind.valid_json, json.loads(raw)
    except ValueError:
        return BodyKind.invalid_json, None


def _field(data: Any, name: str) -> Optional[str]:
    if isinstance(data, dict):
        value = data.get(name)
        if value:
            return str(value)
    return None


class RequestDispatcher:
    def __init__(
        self,
        base_url: str,
        session: SessionStore,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout = timeout
        self._transport = transport

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _headers(self, *, json_body: bool, anonymous: bool, extra: Optional[Dict[str, str]]) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if json_body:
            headers["Content-Type"] = "application/json"
        if not anonymous:
            # Read at call time so a concurrent clear() is honored.
            token = self.session.token()
            if token:
                headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    def _require_session(self) -> None:
        if self.session.token() is None:
            raise AuthError(
                AuthErrorKind.missing_token,
                "You must be logged in to do this. Please login first.",
            )

    async def dispatch(
        self,
        endpoint: str,
        *,
        method: str = "GET",
        json_body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        require_auth: bool = False,
        anonymous: bool = False,
    ) -> Any:
        """Send a JSON request and return the parsed body unmodified.

        `require_auth` fails fast with `AuthError(missing-token)` before any
        network I/O. `anonymous` sends no bearer header and treats 401 as an
        ordinary `ApiError` (the session is not touched).
        """
        if require_auth:
            self._require_session()
        request_headers = self._headers(json_body=True, anonymous=anonymous, extra=headers)
        content = json.dumps(json_body) if json_body is not None else None
        return await self._send(method, endpoint, headers=request_headers, content=content, anonymous=anonymous)

    async def dispatch_multipart(
        self,
        endpoint: str,
        file_data: bytes,
        *,
        field: str = "image",
        filename: str = "upload.jpg",
        content_type: str = "image/jpeg",
        require_auth: bool = False,
    ) -> Any:
        """Upload a file as multipart form data; httpx sets the boundary header."""
        if require_auth:
            self._require_session()
        request_headers = self._headers(json_body=False, anonymous=False, extra=None)
        files = {field: (filename, file_data, content_type)}
        return await self._send("POST", endpoint, headers=request_headers, files=files, anonymous=False)

    async def _send(
        self,
        method: str,
        endpoint: str,
        *,
        headers: Dict[str, str],
        anonymous: bool,
        content: Optional[str] = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = self._url(endpoint)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True, transport=self._transport
            ) as client:
                resp = await client.request(method, url, headers=headers, content=content, files=files)
                # Raw text first: classification must not depend on a parse that can throw.
                raw = resp.text or ""
        except httpx.HTTPError as exc:
            log.warning("%s %s failed: %s", method, url, exc)
            raise TransportError(
                TransportErrorKind.network_unreachable,
                f"Backend server is not reachable at {self.base_url}. "
                "Please check your connection or make sure the backend is running.",
            ) from exc
        return self._interpret(resp.status_code, raw, url=url, anonymous=anonymous)

    def _interpret(self, status: int, raw: str, *, url: str, anonymous: bool) -> Any:
        kind, data = classify_body(raw)
        if status == 401 and not anonymous and kind is not BodyKind.valid_json:
            # The token is rejected whatever the body looks like.
            log.info("401 from %s with a non-JSON body, clearing session", url)
            self.session.clear()
        if kind is BodyKind.html_error_page:
            log.warning("HTML instead of JSON from %s (status=%s)", url, status)
            raise TransportError(
                TransportErrorKind.html_error_page,
                "Backend server returned HTML instead of JSON. "
                "Please make sure the backend server is running.",
                status=status,
                excerpt=excerpt(raw),
            )
        if kind is BodyKind.invalid_json:
            snippet = excerpt(raw)
            log.warning("invalid JSON from %s (status=%s): %s", url, status, snippet)
            raise TransportError(
                TransportErrorKind.invalid_json,
                f"Invalid JSON response from server. Backend might not be running. Response: {snippet}",
                status=status,
                excerpt=snippet,
            )

        if 200 <= status < 300:
            return data

        if status == 401 and not anonymous:
            message = _field(data, "error") or _field(data, "message") or "Invalid or expired token"
            log.info("401 from %s, clearing session: %s", url, message)
            self.session.clear()
            raise AuthError(AuthErrorKind.expired_or_invalid, message)

        message = _field(data, "error") or _field(data, "message") or f"API request failed (status {status})"
        raise ApiError(status, message)
