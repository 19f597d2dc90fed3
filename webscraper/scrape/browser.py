"""Page retrieval: one headless browser per request, or a plain HTTP GET."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Literal

import httpx
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, async_playwright

from webscraper.config import Settings

from .autoscroll import AutoScrollOptions, auto_scroll
from .errors import FetchError, NavigationError

logger = logging.getLogger(__name__)

WaitUntil = Literal["commit", "domcontentloaded", "load", "networkidle"]

STATIC_FETCH_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome Safari"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}


@dataclass(frozen=True)
class BrowserConfig:
    """Browser launch and navigation settings."""

    headless: bool = True
    user_agent: str | None = None
    navigation_timeout_ms: int = 60000
    scroll: AutoScrollOptions = AutoScrollOptions()

    @classmethod
    def from_settings(cls, settings: Settings) -> BrowserConfig:
        return cls(
            headless=settings.browser_headless,
            user_agent=settings.browser_user_agent or None,
            navigation_timeout_ms=settings.navigation_timeout_ms,
            scroll=AutoScrollOptions(max_scrolls=settings.max_scrolls),
        )


@asynccontextmanager
async def open_page(
    config: BrowserConfig,
    cookies: Sequence[dict[str, Any]] | None = None,
    headless: bool | None = None,
) -> AsyncIterator[Page]:
    """Launch Chromium, yield a fresh page, and always close the browser."""
    async with async_playwright() as pw:
        browser = await pw.chromium.launch(
            headless=config.headless if headless is None else headless,
        )
        logger.debug("browser launched")
        try:
            context_kwargs: dict[str, Any] = {}
            if config.user_agent:
                context_kwargs["user_agent"] = config.user_agent
            context = await browser.new_context(**context_kwargs)
            if cookies:
                await context.add_cookies(list(cookies))
            page = await context.new_page()
            yield page
        finally:
            await browser.close()
            logger.debug("browser closed")


async def goto(page: Page, url: str, config: BrowserConfig, wait_until: WaitUntil) -> None:
    try:
        await page.goto(url, wait_until=wait_until, timeout=config.navigation_timeout_ms)
    except PlaywrightError as exc:
        raise NavigationError(f"Failed to load {url}: {exc.message}") from exc


async def fetch_rendered_html(
    url: str,
    config: BrowserConfig,
    *,
    wait_until: WaitUntil = "domcontentloaded",
    scroll: bool = True,
    cookies: Sequence[dict[str, Any]] | None = None,
) -> str:
    """Load *url* in a browser, optionally auto-scroll, and return the DOM."""
    async with open_page(config, cookies=cookies) as page:
        await goto(page, url, config, wait_until)
        if scroll:
            await auto_scroll(page, config.scroll)
        html = await page.content()
    logger.debug("rendered page fetched", extra={"url": url, "length": len(html)})
    return html


async def fetch_static_html(url: str, timeout: float = 30.0) -> str:
    """GET *url* without a browser; non-2xx responses raise ``FetchError``."""
    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            headers=STATIC_FETCH_HEADERS,
        ) as client:
            resp = await client.get(url, timeout=timeout)
    except httpx.HTTPError as exc:
        raise FetchError(f"Fetch failed: {exc}") from exc

    if not resp.is_success:
        raise FetchError(f"Fetch failed with status {resp.status_code}")
    return resp.text


async def fetch_html(url: str, config: BrowserConfig, *, dynamic: bool) -> str:
    if dynamic:
        return await fetch_rendered_html(url, config)
    return await fetch_static_html(url)
