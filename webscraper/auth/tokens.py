"""Session token (JWT) issuing and verification."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from jose import JWTError, jwt

from webscraper.config import Settings

logger = logging.getLogger(__name__)


class InvalidTokenError(Exception):
    """Token is malformed, expired, or signed with another key."""


def create_session_token(user_id: str, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + timedelta(seconds=settings.session_max_age_seconds),
        "jti": uuid4().hex,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str, settings: Settings) -> str:
    """Verify *token* and return the user id it was issued for."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        logger.debug("session token rejected", extra={"reason": str(exc)})
        raise InvalidTokenError(str(exc)) from exc

    subject = payload.get("sub")
    if not subject:
        raise InvalidTokenError("token has no subject")
    return subject
