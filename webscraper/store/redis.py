"""Redis-backed stores for user records and mouse-mode selection buffers."""

from __future__ import annotations

import json
import logging

import redis.asyncio as redis
from redis.backoff import ExponentialBackoff
from redis.retry import Retry

from webscraper.api.schemas import SelectedElement, User

logger = logging.getLogger(__name__)

USER_PREFIX = "user:"
EMAIL_INDEX_PREFIX = "user:email:"
USERNAME_INDEX_PREFIX = "user:username:"
SELECTION_PREFIX = "mouse:"


class UserExistsError(Exception):
    """Raised when the email or username is already registered."""


class UserStore:
    """User records stored as JSON, with unique email/username index keys."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    async def create(self, user: User) -> User:
        """Persist a new user, claiming its email and username atomically.

        Raises ``UserExistsError`` if either is taken. Claimed indexes are
        released again if the record cannot be written.
        """
        email_key = f"{EMAIL_INDEX_PREFIX}{user.email}"
        username_key = f"{USERNAME_INDEX_PREFIX}{user.username}"

        if not await self._client.set(email_key, user.id, nx=True):
            raise UserExistsError(user.email)
        if not await self._client.set(username_key, user.id, nx=True):
            await self._client.delete(email_key)
            raise UserExistsError(user.username)

        try:
            await self.save(user)
        except redis.RedisError:
            await self._client.delete(email_key, username_key)
            raise
        logger.info("user created", extra={"user_id": user.id})
        return user

    async def save(self, user: User) -> None:
        await self._client.set(f"{USER_PREFIX}{user.id}", user.model_dump_json())

    async def get(self, user_id: str) -> User | None:
        raw = await self._client.get(f"{USER_PREFIX}{user_id}")
        if raw is None:
            return None
        return User.model_validate_json(raw)

    async def get_by_email(self, email: str) -> User | None:
        user_id = await self._client.get(f"{EMAIL_INDEX_PREFIX}{email.lower()}")
        if user_id is None:
            return None
        return await self.get(user_id)

    async def exists(self, email: str, username: str) -> bool:
        """``True`` if either the email or the username is already claimed."""
        count = await self._client.exists(
            f"{EMAIL_INDEX_PREFIX}{email.lower()}",
            f"{USERNAME_INDEX_PREFIX}{username.lower()}",
        )
        return count > 0


class SelectionStore:
    """Per-session buffer of elements picked in mouse mode.

    Entries expire after ``ttl`` seconds so abandoned sessions do not pile
    up. Redis failures are logged and reported as an empty buffer.
    """

    def __init__(self, client: redis.Redis, ttl: int = 3600) -> None:
        self._client = client
        self._ttl = ttl

    def _key(self, session_id: str) -> str:
        return f"{SELECTION_PREFIX}{session_id}"

    async def start(self, session_id: str) -> None:
        try:
            await self._client.delete(self._key(session_id))
        except redis.RedisError:
            logger.warning("selection start failed", extra={"session_id": session_id}, exc_info=True)

    async def append(self, session_id: str, elements: list[SelectedElement]) -> int:
        """Append *elements*; returns the buffer length afterwards (0 on error)."""
        if not elements:
            return await self._length(session_id)
        key = self._key(session_id)
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.rpush(key, *(el.model_dump_json() for el in elements))
                pipe.expire(key, self._ttl)
                length, _ = await pipe.execute()
            logger.debug("selection appended", extra={"session_id": session_id, "count": length})
            return length
        except redis.RedisError:
            logger.warning("selection append failed", extra={"session_id": session_id}, exc_info=True)
            return 0

    async def get(self, session_id: str) -> list[SelectedElement]:
        try:
            raw = await self._client.lrange(self._key(session_id), 0, -1)
        except redis.RedisError:
            logger.warning("selection get failed", extra={"session_id": session_id}, exc_info=True)
            return []
        return [SelectedElement.model_validate(json.loads(item)) for item in raw]

    async def pop(self, session_id: str) -> list[SelectedElement]:
        """Return the buffered elements and drop the session."""
        elements = await self.get(session_id)
        try:
            await self._client.delete(self._key(session_id))
        except redis.RedisError:
            logger.warning("selection delete failed", extra={"session_id": session_id}, exc_info=True)
        return elements

    async def _length(self, session_id: str) -> int:
        try:
            return await self._client.llen(self._key(session_id))
        except redis.RedisError:
            return 0


async def create_redis_client(redis_url: str) -> redis.Redis:
    # Strip credentials for logging (everything before @ if present)
    safe_url = redis_url.split("@")[-1] if "@" in redis_url else redis_url
    logger.info("connecting to redis", extra={"redis_url": safe_url})
    retry = Retry(ExponentialBackoff(), retries=3)
    return redis.from_url(
        redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        health_check_interval=30,
        retry=retry,
        retry_on_error=[redis.ConnectionError, redis.TimeoutError],
    )
