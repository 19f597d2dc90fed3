"""Authentication tests: passwords, session tokens and the auth endpoints."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from webscraper.auth.passwords import hash_password, validate_password_complexity, verify_password
from webscraper.auth.tokens import InvalidTokenError, create_session_token, decode_session_token
from webscraper.config import Settings

PASSWORD = "Sup3r$ecret"

REGISTER_BODY = {
    "username": "bob_smith",
    "email": "Bob@Example.com",
    "password": "Passw0rd!",
    "name": "  Bob  ",
    "agree_to_terms": True,
}


# --- passwords (synchronous) ---


def test_hash_is_not_plaintext_and_verifies():
    hashed = hash_password(PASSWORD)
    assert hashed != PASSWORD
    assert hashed.startswith("$argon2")
    assert verify_password(PASSWORD, hashed)
    assert not verify_password("wrong", hashed)


def test_verify_with_garbage_hash_is_false():
    assert verify_password(PASSWORD, "not-a-hash") is False


def test_complexity_accepts_strong_password():
    assert validate_password_complexity("Passw0rd!") == []


def test_complexity_lists_every_missing_rule():
    errors = validate_password_complexity("short")
    assert "Password must be at least 8 characters" in errors
    assert "At least one uppercase letter required" in errors
    assert "At least one number required" in errors
    assert "At least one special character required" in errors
    assert "At least one lowercase letter required" not in errors


# --- tokens ---


def test_token_round_trip(settings: Settings):
    token = create_session_token("user-123", settings)
    assert decode_session_token(token, settings) == "user-123"


def test_token_with_wrong_secret_rejected(settings: Settings):
    token = create_session_token("user-123", settings)
    other = settings.model_copy(update={"jwt_secret": "another-secret"})
    with pytest.raises(InvalidTokenError):
        decode_session_token(token, other)


def test_expired_token_rejected(settings: Settings):
    past = datetime.now(timezone.utc) - timedelta(days=1)
    token = jwt.encode({"sub": "user-123", "exp": past}, settings.jwt_secret, algorithm="HS256")
    with pytest.raises(InvalidTokenError):
        decode_session_token(token, settings)


def test_token_without_subject_rejected(settings: Settings):
    token = jwt.encode({"foo": "bar"}, settings.jwt_secret, algorithm="HS256")
    with pytest.raises(InvalidTokenError):
        decode_session_token(token, settings)


# --- register endpoint ---


@pytest.mark.asyncio
async def test_register_creates_user(client, user_store):
    resp = await client.post("/api/auth/register", json=REGISTER_BODY)
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "User registered successfully"
    assert body["user"]["username"] == "bob_smith"
    assert body["user"]["email"] == "bob@example.com"
    assert "password_hash" not in body["user"]

    stored = await user_store.get_by_email("bob@example.com")
    assert stored.name == "Bob"
    assert stored.password_hash != REGISTER_BODY["password"]


@pytest.mark.asyncio
async def test_register_rejects_duplicate_email(client, user):
    resp = await client.post(
        "/api/auth/register",
        json={**REGISTER_BODY, "email": "ALICE@example.com"},
    )
    assert resp.status_code == 409
    assert resp.json()["message"] == "User already exists"


@pytest.mark.asyncio
async def test_register_rejects_duplicate_username(client, user):
    resp = await client.post(
        "/api/auth/register",
        json={**REGISTER_BODY, "username": "alice_01"},
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_register_reports_duplicate_before_weak_password(client, user):
    resp = await client.post(
        "/api/auth/register",
        json={**REGISTER_BODY, "email": "alice@example.com", "password": "alllowercase"},
    )
    assert resp.status_code == 409
    assert resp.json()["message"] == "User already exists"


@pytest.mark.asyncio
async def test_register_rejects_weak_password(client):
    resp = await client.post(
        "/api/auth/register",
        json={**REGISTER_BODY, "password": "alllowercase"},
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["message"] == "Password complexity error"
    assert "At least one number required" in body["errors"]


@pytest.mark.asyncio
async def test_register_requires_terms(client):
    resp = await client.post(
        "/api/auth/register",
        json={**REGISTER_BODY, "agree_to_terms": False},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request"


@pytest.mark.asyncio
@pytest.mark.parametrize("username", ["ab", "has space", "x" * 21])
async def test_register_validates_username(client, username):
    resp = await client.post("/api/auth/register", json={**REGISTER_BODY, "username": username})
    assert resp.status_code == 400


# --- login endpoint ---


@pytest.mark.asyncio
async def test_login_sets_http_only_cookie(client, user, settings):
    resp = await client.post(
        "/api/auth/login",
        json={"email": "alice@example.com", "password": PASSWORD},
    )
    assert resp.status_code == 200
    assert resp.json()["user"]["id"] == user.id

    set_cookie = resp.headers["set-cookie"]
    assert set_cookie.startswith(f"{settings.session_cookie_name}=")
    assert "HttpOnly" in set_cookie
    assert "samesite=lax" in set_cookie.lower()

    me = await client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["username"] == "alice_01"


@pytest.mark.asyncio
async def test_login_records_last_login_and_resets_counter(client, user, user_store):
    user.failed_login_attempts = 2
    await user_store.save(user)

    resp = await client.post(
        "/api/auth/login",
        json={"email": "alice@example.com", "password": PASSWORD},
    )
    assert resp.status_code == 200

    stored = await user_store.get(user.id)
    assert stored.failed_login_attempts == 0
    assert stored.last_login is not None


@pytest.mark.asyncio
async def test_login_rejects_wrong_password(client, user, user_store):
    resp = await client.post(
        "/api/auth/login",
        json={"email": "alice@example.com", "password": "Wrong$Pass1"},
    )
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid credentials"
    assert "set-cookie" not in resp.headers

    stored = await user_store.get(user.id)
    assert stored.failed_login_attempts == 1


@pytest.mark.asyncio
async def test_login_rejects_unknown_email(client):
    resp = await client.post(
        "/api/auth/login",
        json={"email": "ghost@example.com", "password": PASSWORD},
    )
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_account_locks_after_repeated_failures(client, user, user_store, settings):
    for _ in range(settings.max_failed_logins):
        resp = await client.post(
            "/api/auth/login",
            json={"email": "alice@example.com", "password": "Wrong$Pass1"},
        )
        assert resp.status_code == 401

    stored = await user_store.get(user.id)
    assert stored.locked_until is not None

    # even the right password is refused while locked
    resp = await client.post(
        "/api/auth/login",
        json={"email": "alice@example.com", "password": PASSWORD},
    )
    assert resp.status_code == 401
    assert resp.json()["message"] == "Account locked"


@pytest.mark.asyncio
async def test_expired_lock_allows_login(client, user, user_store):
    user.locked_until = datetime.now(timezone.utc) - timedelta(minutes=1)
    await user_store.save(user)

    resp = await client.post(
        "/api/auth/login",
        json={"email": "alice@example.com", "password": PASSWORD},
    )
    assert resp.status_code == 200
    assert (await user_store.get(user.id)).locked_until is None


# --- session guard ---


@pytest.mark.asyncio
async def test_me_requires_session(client):
    resp = await client.get("/api/auth/me")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_me_accepts_bearer_token(client, auth_headers):
    resp = await client.get("/api/auth/me", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["email"] == "alice@example.com"


@pytest.mark.asyncio
async def test_me_rejects_garbage_token(client):
    resp = await client.get("/api/auth/me", headers={"Authorization": "Bearer nonsense"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_token_for_deleted_user_rejected(client, settings):
    token = create_session_token("does-not-exist", settings)
    resp = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_logout_clears_cookie(client, user, settings):
    await client.post(
        "/api/auth/login",
        json={"email": "alice@example.com", "password": PASSWORD},
    )
    resp = await client.post("/api/auth/logout")
    assert resp.status_code == 200
    assert f'{settings.session_cookie_name}=""' in resp.headers["set-cookie"]
    assert (await client.get("/api/auth/me")).status_code == 401


@pytest.mark.asyncio
async def test_health_no_auth(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
