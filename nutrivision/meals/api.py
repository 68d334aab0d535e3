# -*- coding: utf-8 -*-
"""Meals — API endpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Request

from ..auth.security import get_current_user
from .models import MealCreateRequest
from .storage import compute_stats, create_meal_record

router = APIRouter(prefix="/api/meals", tags=["Meals"])


@router.post("/add", status_code=201, summary="Save a meal")
def add_meal(body: MealCreateRequest, request: Request, user: dict = Depends(get_current_user)):
    meal = request.app.state.meals.save(create_meal_record(user["id"], body))
    return {"success": True, "message": "Meal saved successfully", "data": meal.model_dump()}


@router.get("/history", summary="Meal history, newest first")
def history(
    request: Request,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    user: dict = Depends(get_current_user),
):
    meals = request.app.state.meals.list_for_user(user["id"])
    sliced = meals[offset : offset + limit]
    return {
        "success": True,
        "data": {"count": len(meals), "meals": [m.model_dump() for m in sliced]},
    }


@router.get("/stats", summary="Calorie totals")
def stats(request: Request, user: dict = Depends(get_current_user)):
    meals = request.app.state.meals.list_for_user(user["id"])
    today = datetime.now(timezone.utc).date().isoformat()
    return {"success": True, "data": compute_stats(meals, today).model_dump()}
