# -*- coding: utf-8 -*-
"""Client — third-party identity federation (Google, Apple).

Each provider wraps the SDK runtime object it was handed at startup. The
bridge drives one sign-in at a time through

    idle -> initializing -> awaiting-user-consent -> credential-received
         -> exchanging -> session-established | failed

and touches the session store only on success.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from ..config import Settings
from .envelope import establish_session
from .dispatcher import RequestDispatcher
from .errors import IntegrationError, IntegrationErrorKind
from .models import Session

log = logging.getLogger(__name__)


class OAuthState(str, Enum):
    idle = "idle"
    initializing = "initializing"
    awaiting_user_consent = "awaiting-user-consent"
    credential_received = "credential-received"
    exchanging = "exchanging"
    session_established = "session-established"
    failed = "failed"


@dataclass(frozen=True)
class OAuthCredential:
    """Provider-issued credential; consumed once by the exchange, never stored."""

    provider: str
    payload: Dict[str, Any] = field(repr=False)


class _SingleShot:
    """Bridges a callback-style SDK into one awaitable result.

    The first resolve/reject wins; anything after that is ignored. Safe to
    call from an SDK thread.
    """

    def __init__(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._future: asyncio.Future = self._loop.create_future()

    def _settle(self, value: Any = None, exc: Optional[BaseException] = None) -> None:
        if self._future.done():
            return
        if exc is not None:
            self._future.set_exception(exc)
        else:
            self._future.set_result(value)

    def resolve(self, value: Any) -> None:
        self._loop.call_soon_threadsafe(self._settle, value, None)

    def reject(self, exc: BaseException) -> None:
        self._loop.call_soon_threadsafe(self._settle, None, exc)

    async def wait(self, timeout: Optional[float]) -> Any:
        return await asyncio.wait_for(self._future, timeout)


class IdentityProvider:
    """Capability interface: initialize, prompt_user, exchange_payload."""

    name: str = ""
    endpoint: str = ""

    def __init__(self, sdk: Any, client_id: str) -> None:
        self.sdk = sdk
        self.client_id = client_id

    def _unavailable(self) -> IntegrationError:
        return IntegrationError(
            IntegrationErrorKind.provider_unavailable,
            f"{self.name.title()} Sign-In library not loaded",
            provider=self.name,
        )

    async def initialize(self) -> None:
        raise NotImplementedError

    async def prompt_user(self, timeout: Optional[float] = None) -> OAuthCredential:
        raise NotImplementedError

    def exchange_payload(self, credential: OAuthCredential) -> Dict[str, Any]:
        raise NotImplementedError


class GoogleIdentityProvider(IdentityProvider):
    """Google Identity Services style: silent prompt, credential via callback."""

    name = "google"
    endpoint = "/auth/google"

    def __init__(self, sdk: Any, client_id: str) -> None:
        super().__init__(sdk, client_id)
        self._pending: Optional[_SingleShot] = None

    async def initialize(self) -> None:
        if self.sdk is None:
            raise self._unavailable()
        self._pending = _SingleShot()
        self.sdk.initialize(client_id=self.client_id, callback=self._on_credential)

    def _on_credential(self, response: Any) -> None:
        pending = self._pending
        if pending is None:
            return
        credential = response.get("credential") if isinstance(response, dict) else getattr(response, "credential", None)
        if not credential:
            pending.reject(
                IntegrationError(
                    IntegrationErrorKind.consent_rejected,
                    "Google sign-in did not return a credential",
                    provider=self.name,
                )
            )
            return
        pending.resolve(OAuthCredential(provider=self.name, payload={"credential": credential}))

    async def prompt_user(self, timeout: Optional[float] = None) -> OAuthCredential:
        pending = self._pending
        if pending is None:
            raise self._unavailable()
        try:
            self.sdk.prompt()
            return await pending.wait(timeout)
        except asyncio.TimeoutError as exc:
            raise IntegrationError(
                IntegrationErrorKind.consent_timeout,
                "Google sign-in timed out waiting for the user",
                provider=self.name,
            ) from exc
        finally:
            self._pending = None

    def exchange_payload(self, credential: OAuthCredential) -> Dict[str, Any]:
        return {"credential": credential.payload["credential"]}


class AppleIdentityProvider(IdentityProvider):
    """Sign in with Apple JS style: explicit popup returning an awaitable."""

    name = "apple"
    endpoint = "/auth/apple"

    def __init__(self, sdk: Any, client_id: str, redirect_uri: str) -> None:
        super().__init__(sdk, client_id)
        self.redirect_uri = redirect_uri

    async def initialize(self) -> None:
        if self.sdk is None:
            raise self._unavailable()
        self.sdk.init(
            client_id=self.client_id,
            scope="name email",
            redirect_uri=self.redirect_uri,
            use_popup=True,
        )

    async def prompt_user(self, timeout: Optional[float] = None) -> OAuthCredential:
        if self.sdk is None:
            raise self._unavailable()
        pending = self.sdk.sign_in()
        if not inspect.isawaitable(pending):
            raise IntegrationError(
                IntegrationErrorKind.provider_unavailable,
                "Apple Sign-In library returned a non-awaitable sign_in result",
                provider=self.name,
            )
        try:
            response = await asyncio.wait_for(pending, timeout)
        except asyncio.TimeoutError as exc:
            raise IntegrationError(
                IntegrationErrorKind.consent_timeout,
                "Apple sign-in timed out waiting for the user",
                provider=self.name,
            ) from exc
        response = response if isinstance(response, dict) else {}
        # The popup flow nests the token under "authorization"; older callers return it flat.
        authorization = response.get("authorization") or {}
        id_token = authorization.get("id_token") or response.get("id_token")
        if not id_token:
            raise IntegrationError(
                IntegrationErrorKind.consent_rejected,
                "Apple sign-in did not return an id_token",
                provider=self.name,
            )
        return OAuthCredential(
            provider=self.name,
            payload={"id_token": id_token, "user": response.get("user")},
        )

    def exchange_payload(self, credential: OAuthCredential) -> Dict[str, Any]:
        return {"id_token": credential.payload["id_token"], "user": credential.payload.get("user")}


class OAuthBridge:
    def __init__(
        self,
        dispatcher: RequestDispatcher,
        providers: Mapping[str, IdentityProvider],
        *,
        consent_timeout: Optional[float] = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._providers = dict(providers)
        self.consent_timeout = consent_timeout
        self.state = OAuthState.idle
        self.history: List[OAuthState] = [OAuthState.idle]

    @classmethod
    def from_settings(
        cls,
        dispatcher: RequestDispatcher,
        cfg: Settings,
        *,
        google_sdk: Any = None,
        apple_sdk: Any = None,
    ) -> "OAuthBridge":
        providers = {
            "google": GoogleIdentityProvider(google_sdk, cfg.google_client_id),
            "apple": AppleIdentityProvider(apple_sdk, cfg.apple_client_id, cfg.apple_redirect_uri),
        }
        return cls(dispatcher, providers, consent_timeout=cfg.oauth_timeout)

    def _transition(self, state: OAuthState) -> None:
        log.debug("oauth %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    async def sign_in(self, provider_name: str) -> Session:
        self.state = OAuthState.idle
        self.history = [OAuthState.idle]
        try:
            self._transition(OAuthState.initializing)
            provider = self._providers.get(provider_name)
            if provider is None:
                raise IntegrationError(
                    IntegrationErrorKind.provider_unavailable,
                    f"Unknown sign-in provider: {provider_name}",
                    provider=provider_name,
                )
            await provider.initialize()

            self._transition(OAuthState.awaiting_user_consent)
            credential = await provider.prompt_user(self.consent_timeout)

            self._transition(OAuthState.credential_received)
            body = provider.exchange_payload(credential)

            self._transition(OAuthState.exchanging)
            data = await self._dispatcher.dispatch(
                provider.endpoint,
                method="POST",
                json_body=body,
                anonymous=True,
            )
            session = establish_session(self._dispatcher.session, data, provider=provider.name)
        except Exception as exc:
            self._transition(OAuthState.failed)
            log.warning("%s sign-in failed: %s", provider_name, exc)
            raise

        self._transition(OAuthState.session_established)
        return session
