# -*- coding: utf-8 -*-

from __future__ import annotations

import asyncio
import json
import unittest
from unittest.mock import patch

import httpx

from nutrivision.client.dispatcher import RequestDispatcher
from nutrivision.client.errors import (
    ApiError,
    EnvelopeError,
    IntegrationError,
    IntegrationErrorKind,
    TransportError,
    TransportErrorKind,
)
from nutrivision.client.models import UserProfile
from nutrivision.client.oauth import (
    AppleIdentityProvider,
    GoogleIdentityProvider,
    OAuthBridge,
    OAuthState,
)
from nutrivision.client.session import SessionStore

BASE = "http://backend.test/api"

_SUCCESS = {
    "success": True,
    "data": {
        "token": "session-token",
        "user": {"id": "g-1", "name": "Ada", "email": "ada@example.com", "provider": "google"},
    },
}


class FakeGoogleSDK:
    """Mimics google.accounts.id: initialize(callback) + prompt()."""

    def __init__(self, response=None, fire: bool = True) -> None:
        self.response = response if response is not None else {"credential": "google-jwt"}
        self.fire = fire
        self.callback = None
        self.client_id = None

    def initialize(self, *, client_id, callback) -> None:
        self.client_id = client_id
        self.callback = callback

    def prompt(self) -> None:
        if self.fire:
            self.callback(self.response)
            # Extra callbacks must not resolve the flow twice.
            self.callback({"credential": "late"})


class FakeAppleSDK:
    def __init__(self, response=None) -> None:
        self.response = response or {"authorization": {"id_token": "apple-jwt"}, "user": {"name": "Ada"}}
        self.init_kwargs = None

    def init(self, **kwargs) -> None:
        self.init_kwargs = kwargs

    async def sign_in(self):
        return self.response


class _Backend:
    def __init__(self, status: int = 200, body: object = _SUCCESS) -> None:
        self.status = status
        self.body = body
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        text = self.body if isinstance(self.body, str) else json.dumps(self.body)
        return httpx.Response(self.status, text=text)


class TestOAuthBridge(unittest.IsolatedAsyncioTestCase):
    def _bridge(self, backend: _Backend, *, google=None, apple=None, session=None, timeout=None) -> OAuthBridge:
        session = session or SessionStore()
        dispatcher = RequestDispatcher(BASE, session, transport=httpx.MockTransport(backend))
        providers = {
            "google": GoogleIdentityProvider(google, "google-client"),
            "apple": AppleIdentityProvider(apple, "apple-client", "https://app.example"),
        }
        return OAuthBridge(dispatcher, providers, consent_timeout=timeout)

    async def test_google_flow_establishes_session_once(self) -> None:
        backend = _Backend()
        session = SessionStore()
        sdk = FakeGoogleSDK()
        bridge = self._bridge(backend, google=sdk, session=session)

        with patch.object(session, "set", wraps=session.set) as set_spy:
            result = await bridge.sign_in("google")

        set_spy.assert_called_once()
        self.assertEqual(result.token, "session-token")
        self.assertEqual(session.get().profile.provider, "google")
        self.assertEqual(sdk.client_id, "google-client")
        self.assertEqual(json.loads(backend.requests[0].content), {"credential": "google-jwt"})
        self.assertEqual(backend.requests[0].url.path, "/api/auth/google")
        self.assertEqual(
            bridge.history,
            [
                OAuthState.idle,
                OAuthState.initializing,
                OAuthState.awaiting_user_consent,
                OAuthState.credential_received,
                OAuthState.exchanging,
                OAuthState.session_established,
            ],
        )

    async def test_apple_flow_posts_id_token_and_user(self) -> None:
        backend = _Backend()
        apple = FakeAppleSDK()
        bridge = self._bridge(backend, apple=apple)
        result = await bridge.sign_in("apple")
        self.assertEqual(result.profile.id, "g-1")
        self.assertEqual(apple.init_kwargs["scope"], "name email")
        self.assertTrue(apple.init_kwargs["use_popup"])
        sent = json.loads(backend.requests[0].content)
        self.assertEqual(sent, {"id_token": "apple-jwt", "user": {"name": "Ada"}})
        self.assertEqual(backend.requests[0].url.path, "/api/auth/apple")

    async def test_local_provider_tag_is_replaced_by_federating_provider(self) -> None:
        body = {"success": True, "data": {"token": "t", "user": {"_id": "a-1", "name": "Ada", "email": "a@b.c"}}}
        result = await self._bridge(_Backend(body=body), apple=FakeAppleSDK()).sign_in("apple")
        self.assertEqual(result.profile.provider, "apple")

    async def test_missing_sdk_fails_fast_without_network(self) -> None:
        backend = _Backend()
        bridge = self._bridge(backend)
        with self.assertRaises(IntegrationError) as ctx:
            await bridge.sign_in("google")
        self.assertEqual(ctx.exception.kind, IntegrationErrorKind.provider_unavailable)
        self.assertEqual(bridge.state, OAuthState.failed)
        self.assertEqual(backend.requests, [])

    async def test_unknown_provider_is_unavailable(self) -> None:
        with self.assertRaises(IntegrationError) as ctx:
            await self._bridge(_Backend()).sign_in("github")
        self.assertEqual(ctx.exception.kind, IntegrationErrorKind.provider_unavailable)

    async def test_failed_exchange_leaves_existing_session(self) -> None:
        session = SessionStore()
        previous = UserProfile(id="old", name="Old", email="old@example.com")
        session.set("old-token", previous)
        backend = _Backend(status=401, body={"success": False, "error": "Invalid Google token"})
        bridge = self._bridge(backend, google=FakeGoogleSDK(), session=session)

        with self.assertRaises(ApiError):
            await bridge.sign_in("google")

        self.assertEqual(bridge.state, OAuthState.failed)
        self.assertEqual(session.token(), "old-token")
        self.assertEqual(session.get().profile, previous)

    async def test_unsuccessful_envelope_is_failure(self) -> None:
        session = SessionStore()
        backend = _Backend(body={"success": False, "message": "Account disabled"})
        with self.assertRaises(EnvelopeError) as ctx:
            await self._bridge(backend, google=FakeGoogleSDK(), session=session).sign_in("google")
        self.assertEqual(str(ctx.exception), "Account disabled")
        self.assertEqual(ctx.exception.envelope, {"success": False, "message": "Account disabled"})
        self.assertIsNone(session.get())

    async def test_html_exchange_response_is_transport_error(self) -> None:
        session = SessionStore()
        backend = _Backend(status=404, body="<!DOCTYPE html><p>Not Found</p>")
        with self.assertRaises(TransportError) as ctx:
            await self._bridge(backend, apple=FakeAppleSDK(), session=session).sign_in("apple")
        self.assertEqual(ctx.exception.kind, TransportErrorKind.html_error_page)
        self.assertIsNone(session.get())

    async def test_google_callback_without_credential_is_rejected(self) -> None:
        sdk = FakeGoogleSDK(response={"select_by": "btn"})
        with self.assertRaises(IntegrationError) as ctx:
            await self._bridge(_Backend(), google=sdk).sign_in("google")
        self.assertEqual(ctx.exception.kind, IntegrationErrorKind.consent_rejected)

    async def test_consent_timeout(self) -> None:
        sdk = FakeGoogleSDK(fire=False)
        bridge = self._bridge(_Backend(), google=sdk, timeout=0.05)
        with self.assertRaises(IntegrationError) as ctx:
            await bridge.sign_in("google")
        self.assertEqual(ctx.exception.kind, IntegrationErrorKind.consent_timeout)
        self.assertEqual(bridge.state, OAuthState.failed)

    async def test_callback_from_another_thread(self) -> None:
        class ThreadedSDK(FakeGoogleSDK):
            def prompt(self) -> None:
                loop = asyncio.get_running_loop()
                loop.run_in_executor(None, self.callback, {"credential": "threaded"})

        backend = _Backend()
        await self._bridge(backend, google=ThreadedSDK(), timeout=5).sign_in("google")
        self.assertEqual(json.loads(backend.requests[0].content), {"credential": "threaded"})

    async def test_apple_sign_in_must_be_awaitable(self) -> None:
        class BlockingAppleSDK(FakeAppleSDK):
            def sign_in(self):
                return self.response

        session = SessionStore()
        backend = _Backend()
        bridge = self._bridge(backend, apple=BlockingAppleSDK(), session=session)
        with self.assertRaises(IntegrationError) as ctx:
            await bridge.sign_in("apple")
        self.assertEqual(ctx.exception.kind, IntegrationErrorKind.provider_unavailable)
        self.assertEqual(ctx.exception.provider, "apple")
        self.assertEqual(bridge.state, OAuthState.failed)
        self.assertEqual(backend.requests, [])
        self.assertIsNone(session.get())


if __name__ == "__main__":
    unittest.main()
