"""Request/response Pydantic models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, HttpUrl, field_validator

DEFAULT_ATTRIBUTES = ["href", "src", "title", "alt"]


# --- auth ---


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=20, pattern=r"^[a-zA-Z0-9_]+$")
    email: EmailStr = Field(max_length=255)
    password: str = Field(min_length=8, max_length=100)
    name: str | None = Field(default=None, max_length=50)
    agree_to_terms: bool

    @field_validator("agree_to_terms")
    @classmethod
    def _must_agree(cls, value: bool) -> bool:
        if value is not True:
            raise ValueError("Terms must be accepted")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserOut(BaseModel):
    id: str
    username: str
    email: str
    name: str = ""


class User(BaseModel):
    """Stored user record. ``password_hash`` never leaves the service."""

    id: str
    username: str
    email: str
    password_hash: str
    name: str = ""
    failed_login_attempts: int = 0
    locked_until: datetime | None = None
    last_login: datetime | None = None
    created_at: datetime

    def public(self) -> UserOut:
        return UserOut(id=self.id, username=self.username, email=self.email, name=self.name)


# --- scraping ---


class ScrapeRequest(BaseModel):
    url: str = Field(min_length=1)


class TagScrapeResult(BaseModel):
    json_by_tag: dict[str, list[str]]
    json_for_ui: list[str]
    csv: str


class SelectorRequest(BaseModel):
    url: HttpUrl
    selector: str = Field(min_length=1)
    dynamic: bool = True
    attributes: list[str] = Field(default_factory=lambda: list(DEFAULT_ATTRIBUTES))
    format: Literal["json", "csv"] = "json"


class SelectorResult(BaseModel):
    message: str
    count: int
    rows: list[dict[str, str]]


class BrowserCookie(BaseModel):
    """Cookie in the shape Playwright's ``BrowserContext.add_cookies`` accepts."""

    name: str
    value: str
    url: str | None = None
    domain: str | None = None
    path: str | None = None
    expires: float | None = None
    httpOnly: bool | None = None
    secure: bool | None = None
    sameSite: Literal["Strict", "Lax", "None"] | None = None


class CookieScrapeRequest(BaseModel):
    target_url: str = Field(min_length=1)
    cookies: list[BrowserCookie]
    scroll_until_no_new_content: bool = False


class CookieScrapeResult(BaseModel):
    text: list[str]


# --- mouse mode ---


class MouseModeRequest(BaseModel):
    url: str = Field(min_length=1)


class SelectedElement(BaseModel):
    text: str
    tag: str


class MouseModeResult(BaseModel):
    selected_elements: list[SelectedElement]
    session_id: str
    timed_out: bool = False


class MouseModeUpdate(BaseModel):
    selected_elements: list[SelectedElement]
