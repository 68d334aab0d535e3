# -*- coding: utf-8 -*-
"""Auth — API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from .models import AuthData, AuthResponse, LoginRequest, RegisterRequest, UserPublic
from .security import create_access_token, hash_password, verify_password

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _user_public(row: dict) -> UserPublic:
    return UserPublic(id=row["id"], name=row["name"], email=row["email"], provider=row["provider"])


def _auth_response(row: dict, message: str) -> AuthResponse:
    token = create_access_token(user_id=row["id"], email=row["email"])
    return AuthResponse(message=message, data=AuthData(token=token, user=_user_public(row)))


@router.post("/register", response_model=AuthResponse, status_code=201, summary="Register a new user")
def register(body: RegisterRequest, request: Request):
    users = request.app.state.users
    if users.get_user_by_email(body.email):
        raise HTTPException(status_code=400, detail="User already exists with this email")
    user = users.create_user(name=body.name, email=body.email, password_hash=hash_password(body.password))
    return _auth_response(user, "User registered successfully")


@router.post("/login", response_model=AuthResponse, summary="Login")
def login(body: LoginRequest, request: Request):
    user = request.app.state.users.get_user_by_email(body.email)
    if not user or not verify_password(body.password, user.get("password_hash")):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return _auth_response(user, "Login successful")
