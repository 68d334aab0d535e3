# -*- coding: utf-8 -*-
"""Meals — storage (SQLite when the database is up, process memory otherwise)."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List
from uuid import uuid4

from ..app_db import DatabaseStatus, db_conn
from .models import Meal, MealCreateRequest, MealStats


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def create_meal_record(user_id: str, request: MealCreateRequest) -> Meal:
    now = _utc_now()
    payload = request.model_dump(by_alias=True, exclude_none=True)
    return Meal(
        id=str(uuid4()),
        user_id=user_id,
        eaten_at=request.eaten_at or now,
        created_at=now,
        meal=payload,
    )


def _date_prefix(iso8601: str) -> str:
    return (iso8601 or "")[:10]


def compute_stats(meals: List[Meal], today: str) -> MealStats:
    total = 0.0
    today_total = 0.0
    today_count = 0
    for meal in meals:
        calories = float(meal.meal.get("calories") or 0.0)
        total += calories
        if _date_prefix(meal.eaten_at) == today:
            today_total += calories
            today_count += 1
    count = len(meals)
    return MealStats(
        total_meals=count,
        total_calories=round(total, 1),
        average_calories=round(total / count, 1) if count else 0.0,
        today_calories=round(today_total, 1),
        today_meals=today_count,
    )


class SqliteMealStorage:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def save(self, meal: Meal) -> Meal:
        with db_conn(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO meals (id, user_id, payload_json, calories_kcal, eaten_at, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    meal.id,
                    meal.user_id,
                    json.dumps(meal.meal, ensure_ascii=False),
                    float(meal.meal.get("calories") or 0.0),
                    meal.eaten_at,
                    meal.created_at,
                ),
            )
        return meal

    def list_for_user(self, user_id: str) -> List[Meal]:
        with db_conn(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM meals WHERE user_id = ? ORDER BY eaten_at DESC, created_at DESC",
                (user_id,),
            ).fetchall()
        return [
            Meal(
                id=row["id"],
                user_id=row["user_id"],
                eaten_at=row["eaten_at"],
                created_at=row["created_at"],
                meal=json.loads(row["payload_json"]),
            )
            for row in rows
        ]


class MemoryMealStorage:
    def __init__(self) -> None:
        self._meals: Dict[str, List[Meal]] = {}

    def save(self, meal: Meal) -> Meal:
        self._meals.setdefault(meal.user_id, []).append(meal)
        return meal

    def list_for_user(self, user_id: str) -> List[Meal]:
        meals = list(self._meals.get(user_id, []))
        meals.sort(key=lambda m: (m.eaten_at, m.created_at), reverse=True)
        return meals


def make_meal_storage(status: DatabaseStatus):
    if status.connected and status.path is not None:
        return SqliteMealStorage(status.path)
    return MemoryMealStorage()
