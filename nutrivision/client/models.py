# -*- coding: utf-8 -*-
"""Client — Pydantic models."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class UserProfile(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    # Mongo-style backends send `_id`.
    id: str = Field(..., min_length=1, validation_alias=AliasChoices("id", "_id"))
    name: str = ""
    email: str = ""
    provider: str = "local"


class Session(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str = Field(..., min_length=1)
    profile: UserProfile


class Envelope(BaseModel):
    success: bool = False
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    message: Optional[str] = None

    def failure_message(self, default: str) -> str:
        return self.error or self.message or default


class AuthPayload(BaseModel):
    """`data` of a successful login/register/OAuth exchange envelope."""

    token: str = Field(..., min_length=1)
    user: UserProfile
