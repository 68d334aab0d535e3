# -*- coding: utf-8 -*-

from __future__ import annotations

import shutil
import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from nutrivision.api import create_app
from nutrivision.app_db import DatabaseStatus, try_connect
from nutrivision.auth.security import create_access_token


class _BackendCases:
    """Shared checks run against both storage modes."""

    client: TestClient

    def _register(self, email: str = "ada@example.com") -> dict:
        resp = self.client.post(
            "/api/auth/register",
            json={"name": "Ada", "email": email, "password": "password123"},
        )
        self.assertEqual(resp.status_code, 201)
        return resp.json()

    def test_register_login_and_meals(self) -> None:
        body = self._register()
        self.assertTrue(body["success"])
        token = body["data"]["token"]
        self.assertEqual(body["data"]["user"]["provider"], "local")

        resp = self.client.post("/api/auth/login", json={"email": "ADA@example.com", "password": "password123"})
        self.assertEqual(resp.status_code, 200)
        headers = {"Authorization": f"Bearer {resp.json()['data']['token']}"}

        for meal in (
            {"name": "Oatmeal", "calories": 300, "mealType": "breakfast", "eatenAt": "2026-01-01T08:00:00Z"},
            {"name": "Salad", "calories": 200, "eatenAt": "2026-01-01T12:00:00Z", "confidence": 0.8},
        ):
            resp = self.client.post("/api/meals/add", json=meal, headers=headers)
            self.assertEqual(resp.status_code, 201)

        history = self.client.get("/api/meals/history", headers={"Authorization": f"Bearer {token}"}).json()
        self.assertEqual(history["data"]["count"], 2)
        first = history["data"]["meals"][0]
        self.assertEqual(first["meal"]["name"], "Salad")
        self.assertEqual(first["meal"]["confidence"], 0.8)

        stats = self.client.get("/api/meals/stats", headers=headers).json()["data"]
        self.assertEqual(stats["total_meals"], 2)
        self.assertEqual(stats["total_calories"], 500.0)
        self.assertEqual(stats["average_calories"], 250.0)

    def test_duplicate_registration_is_envelope_error(self) -> None:
        self._register("dup@example.com")
        resp = self.client.post(
            "/api/auth/register",
            json={"name": "Ada", "email": "dup@example.com", "password": "password123"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"success": False, "error": "User already exists with this email"})

    def test_bad_password_is_401(self) -> None:
        self._register("pw@example.com")
        resp = self.client.post("/api/auth/login", json={"email": "pw@example.com", "password": "wrong"})
        self.assertEqual(resp.status_code, 401)
        self.assertFalse(resp.json()["success"])

    def test_meals_require_token(self) -> None:
        resp = self.client.post("/api/meals/add", json={"name": "x"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["error"], "No token provided")

        resp = self.client.get("/api/meals/history", headers={"Authorization": "Bearer not.a.jwt"})
        self.assertEqual(resp.status_code, 401)

    def test_token_for_unknown_user_is_401(self) -> None:
        token = create_access_token(user_id="ghost", email="ghost@example.com")
        resp = self.client.get("/api/meals/stats", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["error"], "User not found")

    def test_validation_errors_are_envelopes(self) -> None:
        resp = self.client.post("/api/auth/register", json={"email": "a@b.c"})
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(resp.json()["success"])

    def test_unknown_route_is_json_not_html(self) -> None:
        resp = self.client.get("/api/does-not-exist")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["success"], False)


class TestBackendInMemory(_BackendCases, unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(create_app(DatabaseStatus(path=None, connected=False, error="down")))

    def tearDown(self) -> None:
        self.client.close()

    def test_health_reports_disconnected(self) -> None:
        body = self.client.get("/api/health").json()
        self.assertEqual(body, {"status": "OK", "message": "NutriVision API is running", "database": "disconnected"})


class TestBackendSqlite(_BackendCases, unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = Path(tempfile.mkdtemp(prefix="nutrivision-api-"))
        status = try_connect(self._tmp / "nutrivision.db")
        self.assertTrue(status.connected)
        self.client = TestClient(create_app(status))

    def tearDown(self) -> None:
        self.client.close()
        shutil.rmtree(self._tmp, ignore_errors=True)

    def test_health_reports_connected(self) -> None:
        self.assertEqual(self.client.get("/api/health").json()["database"], "connected")

    def test_storage_failure_is_json_500(self) -> None:
        client = TestClient(self.client.app, raise_server_exceptions=False)
        # Dropping the file leaves a fresh database with no tables behind it.
        (self._tmp / "nutrivision.db").unlink()
        resp = client.post(
            "/api/auth/register",
            json={"name": "Ada", "email": "gone@example.com", "password": "password123"},
        )
        self.assertEqual(resp.status_code, 500)
        self.assertTrue(resp.headers["content-type"].startswith("application/json"))
        self.assertEqual(resp.json(), {"success": False, "error": "Internal server error"})


if __name__ == "__main__":
    unittest.main()
