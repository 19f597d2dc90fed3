"""Registration and login with lockout bookkeeping."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone

from webscraper.api.schemas import RegisterRequest, User
from webscraper.auth.passwords import hash_password, validate_password_complexity, verify_password
from webscraper.config import Settings
from webscraper.store.redis import UserExistsError, UserStore

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Base class for authentication failures."""


class WeakPasswordError(AuthError):
    def __init__(self, errors: list[str]) -> None:
        super().__init__("Password complexity error")
        self.errors = errors


class InvalidCredentialsError(AuthError):
    pass


class AccountLockedError(AuthError):
    def __init__(self, locked_until: datetime) -> None:
        super().__init__("Account locked")
        self.locked_until = locked_until


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def register_user(store: UserStore, body: RegisterRequest) -> User:
    """Validate and create a user. The password is hashed before storage.

    Duplicates are reported before password complexity. Raises
    ``store.redis.UserExistsError`` or ``WeakPasswordError``.
    """
    if await store.exists(str(body.email), body.username):
        raise UserExistsError(str(body.email).lower())

    errors = validate_password_complexity(body.password)
    if errors:
        raise WeakPasswordError(errors)

    user = User(
        id=uuid.uuid4().hex,
        username=body.username.lower(),
        email=str(body.email).lower(),
        password_hash=hash_password(body.password),
        name=(body.name or "").strip(),
        created_at=_now(),
    )
    return await store.create(user)


async def authenticate(
    store: UserStore,
    settings: Settings,
    email: str,
    password: str,
) -> User:
    """Check credentials and update the user's login counters.

    A wrong password bumps ``failed_login_attempts``; hitting
    ``settings.max_failed_logins`` locks the account for
    ``settings.lockout_minutes``. Success clears both and stamps
    ``last_login``.
    """
    user = await store.get_by_email(email)
    if user is None:
        logger.info("login rejected: unknown email")
        raise InvalidCredentialsError()

    now = _now()
    if user.locked_until is not None and user.locked_until > now:
        logger.info("login rejected: account locked", extra={"user_id": user.id})
        raise AccountLockedError(user.locked_until)

    if not verify_password(password, user.password_hash):
        user.failed_login_attempts += 1
        if user.failed_login_attempts >= settings.max_failed_logins:
            user.locked_until = now + timedelta(minutes=settings.lockout_minutes)
            user.failed_login_attempts = 0
            logger.warning("account locked after failed logins", extra={"user_id": user.id})
        await store.save(user)
        logger.info("login rejected: bad password", extra={"user_id": user.id})
        raise InvalidCredentialsError()

    user.failed_login_attempts = 0
    user.locked_until = None
    user.last_login = now
    await store.save(user)
    logger.info("login succeeded", extra={"user_id": user.id})
    return user
