"""Registration, login and session endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from webscraper.api.deps import get_settings_state, get_user_store
from webscraper.api.schemas import LoginRequest, RegisterRequest, User, UserOut
from webscraper.auth.dependencies import require_user
from webscraper.auth.service import (
    AccountLockedError,
    InvalidCredentialsError,
    WeakPasswordError,
    authenticate,
    register_user,
)
from webscraper.auth.tokens import create_session_token
from webscraper.config import Settings
from webscraper.store.redis import UserExistsError, UserStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    users: UserStore = Depends(get_user_store),
):
    try:
        user = await register_user(users, body)
    except WeakPasswordError as exc:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Password complexity error", "errors": exc.errors},
        )
    except UserExistsError:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"message": "User already exists"},
        )
    return {"message": "User registered successfully", "user": user.public().model_dump()}


@router.post("/login")
async def login(
    body: LoginRequest,
    response: Response,
    users: UserStore = Depends(get_user_store),
    settings: Settings = Depends(get_settings_state),
):
    try:
        user = await authenticate(users, settings, str(body.email).lower(), body.password)
    except AccountLockedError:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"message": "Account locked"},
        )
    except InvalidCredentialsError:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"message": "Invalid credentials"},
        )

    response.set_cookie(
        key=settings.session_cookie_name,
        value=create_session_token(user.id, settings),
        max_age=settings.session_max_age_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )
    return {"message": "Login successful", "user": user.public().model_dump()}


@router.post("/logout")
async def logout(
    response: Response,
    settings: Settings = Depends(get_settings_state),
):
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )
    return {"message": "Logged out"}


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(require_user)):
    return user.public()
