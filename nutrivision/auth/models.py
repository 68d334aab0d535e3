# -*- coding: utf-8 -*-
"""Auth — Pydantic models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=6, max_length=128)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=128)


class UserPublic(BaseModel):
    id: str
    name: str
    email: str
    provider: str


class AuthData(BaseModel):
    token: str
    user: UserPublic


class AuthResponse(BaseModel):
    success: bool = True
    message: str
    data: AuthData
