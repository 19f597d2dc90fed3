"""Pydantic Settings: loads configuration from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "extra": "ignore"}

    jwt_secret: str
    jwt_algorithm: str = "HS256"
    session_max_age_seconds: int = 30 * 24 * 60 * 60
    session_cookie_name: str = "session_token"
    cookie_secure: bool = False

    redis_url: str = "redis://localhost:6379"

    max_failed_logins: int = 5
    lockout_minutes: int = 15

    browser_headless: bool = True
    browser_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/116.0 Safari/537.36"
    )
    navigation_timeout_ms: int = 60000
    max_scrolls: int = 100

    mouse_mode_headless: bool = False
    mouse_mode_timeout_seconds: int = 600
    mouse_session_ttl_seconds: int = 3600

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
