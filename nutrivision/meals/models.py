# -*- coding: utf-8 -*-
"""Meals — Pydantic models."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MealCreateRequest(BaseModel):
    # Analysis results carry provider-specific fields; keep them verbatim.
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=200)
    calories: float = Field(0.0, ge=0)
    protein: Optional[float] = Field(None, ge=0)
    carbs: Optional[float] = Field(None, ge=0)
    fat: Optional[float] = Field(None, ge=0)
    meal_type: Optional[str] = Field(None, alias="mealType", max_length=32)
    items: List[Dict[str, Any]] = Field(default_factory=list)
    eaten_at: Optional[str] = Field(None, alias="eatenAt", description="ISO8601 timestamp")


class Meal(BaseModel):
    id: str
    user_id: str
    eaten_at: str
    created_at: str
    meal: Dict[str, Any]


class MealStats(BaseModel):
    total_meals: int = 0
    total_calories: float = 0.0
    average_calories: float = 0.0
    today_calories: float = 0.0
    today_meals: int = 0
