# -*- coding: utf-8 -*-
"""Client — typed wrappers for the backend endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..config import Settings, settings as default_settings
from .dispatcher import RequestDispatcher
from .envelope import establish_session
from .models import Session
from .oauth import OAuthBridge
from .session import SessionStore


class AuthAPI:
    def __init__(self, dispatcher: RequestDispatcher) -> None:
        self._dispatcher = dispatcher

    async def register(self, name: str, email: str, password: str) -> Session:
        data = await self._dispatcher.dispatch(
            "/auth/register",
            method="POST",
            json_body={"name": name, "email": email, "password": password},
        )
        return establish_session(self._dispatcher.session, data)

    async def login(self, email: str, password: str) -> Session:
        data = await self._dispatcher.dispatch(
            "/auth/login",
            method="POST",
            json_body={"email": email, "password": password},
        )
        return establish_session(self._dispatcher.session, data)

    def logout(self) -> None:
        self._dispatcher.session.clear()


class FoodAnalysisAPI:
    def __init__(self, dispatcher: RequestDispatcher) -> None:
        self._dispatcher = dispatcher

    async def analyze(self, image: bytes, *, filename: str = "meal.jpg", content_type: str = "image/jpeg") -> Any:
        return await self._dispatcher.dispatch_multipart(
            "/food-analysis/analyze",
            image,
            field="image",
            filename=filename,
            content_type=content_type,
        )

    async def analyze_mock(self) -> Any:
        return await self._dispatcher.dispatch("/food-analysis/analyze-mock", method="POST")


class ChatbotAPI:
    def __init__(self, dispatcher: RequestDispatcher) -> None:
        self._dispatcher = dispatcher

    async def send_message(self, message: str, conversation_history: Optional[List[Dict[str, Any]]] = None) -> Any:
        return await self._dispatcher.dispatch(
            "/chatbot/message",
            method="POST",
            json_body={"message": message, "conversationHistory": conversation_history or []},
        )

    async def suggestions(self) -> Any:
        return await self._dispatcher.dispatch("/chatbot/suggestions")


class MealsAPI:
    def __init__(self, dispatcher: RequestDispatcher) -> None:
        self._dispatcher = dispatcher

    async def history(self) -> Any:
        return await self._dispatcher.dispatch("/meals/history")

    async def add(self, meal_data: Dict[str, Any]) -> Any:
        return await self._dispatcher.dispatch(
            "/meals/add",
            method="POST",
            json_body=meal_data,
            require_auth=True,
        )

    async def stats(self) -> Any:
        return await self._dispatcher.dispatch("/meals/stats")


class NutriVisionClient:
    """One session store and one dispatcher shared by every endpoint group."""

    def __init__(
        self,
        *,
        cfg: Optional[Settings] = None,
        session: Optional[SessionStore] = None,
        dispatcher: Optional[RequestDispatcher] = None,
        google_sdk: Any = None,
        apple_sdk: Any = None,
    ) -> None:
        cfg = cfg or default_settings
        self.settings = cfg
        if dispatcher is not None:
            self.session = dispatcher.session
            self.dispatcher = dispatcher
        else:
            self.session = session or SessionStore(cfg.session_file)
            self.dispatcher = RequestDispatcher(cfg.api_base_url, self.session, timeout=cfg.request_timeout)
        self.auth = AuthAPI(self.dispatcher)
        self.food_analysis = FoodAnalysisAPI(self.dispatcher)
        self.chatbot = ChatbotAPI(self.dispatcher)
        self.meals = MealsAPI(self.dispatcher)
        self.oauth = OAuthBridge.from_settings(self.dispatcher, cfg, google_sdk=google_sdk, apple_sdk=apple_sdk)

    async def health(self) -> Any:
        return await self.dispatcher.dispatch("/health")
