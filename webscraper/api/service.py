"""Service layer: orchestrates scraping operations for the API routes."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncGenerator

from webscraper.api.schemas import (
    CookieScrapeRequest,
    MouseModeResult,
    SelectedElement,
    SelectorRequest,
    TagScrapeResult,
)
from webscraper.config import Settings
from webscraper.scrape import (
    BrowserConfig,
    NavigationError,
    extract_by_selector,
    extract_by_tag,
    extract_visible_text,
    fetch_html,
    fetch_rendered_html,
    flatten_tags,
    new_session_id,
    normalize_url,
    pick_elements,
    tags_to_csv,
)
from webscraper.store.redis import SelectionStore

logger = logging.getLogger(__name__)

_picker_tasks: set[asyncio.Task[None]] = set()


async def scrape_page_by_tag(url: str, config: BrowserConfig) -> TagScrapeResult:
    """Crawl the whole page and group values by tag, with a CSV rendition."""
    logger.info("full page scrape started", extra={"url": url})
    html = await fetch_rendered_html(url, config, wait_until="domcontentloaded", scroll=True)
    data_by_tag = extract_by_tag(html)
    logger.info(
        "full page scrape completed",
        extra={"url": url, "tags": len(data_by_tag)},
    )
    return TagScrapeResult(
        json_by_tag=data_by_tag,
        json_for_ui=flatten_tags(data_by_tag),
        csv=tags_to_csv(data_by_tag),
    )


async def scrape_with_cookies(body: CookieScrapeRequest, config: BrowserConfig) -> list[str]:
    """Scrape visible text from a page that needs the caller's session cookies."""
    logger.info(
        "cookie scrape started",
        extra={"url": body.target_url, "cookies": len(body.cookies)},
    )
    cookies = [cookie.model_dump(exclude_none=True) for cookie in body.cookies]
    html = await fetch_rendered_html(
        body.target_url,
        config,
        wait_until="networkidle",
        scroll=body.scroll_until_no_new_content,
        cookies=cookies,
    )
    return extract_visible_text(html)


async def scrape_selector(body: SelectorRequest, config: BrowserConfig) -> list[dict[str, str]]:
    url = str(body.url)
    logger.info(
        "selector scrape started",
        extra={"url": url, "selector": body.selector, "dynamic": body.dynamic},
    )
    html = await fetch_html(url, config, dynamic=body.dynamic)
    return extract_by_selector(html, body.selector, body.attributes)


async def run_mouse_mode(
    url: str,
    store: SelectionStore,
    config: BrowserConfig,
    settings: Settings,
) -> MouseModeResult:
    """Run a picker session to completion and return everything selected."""
    target = normalize_url(url)
    session_id = new_session_id()
    await store.start(session_id)
    logger.info("mouse mode started", extra={"url": target, "session_id": session_id})

    async def on_select(batch: list[SelectedElement]) -> None:
        await store.append(session_id, batch)

    try:
        completed = await pick_elements(
            target,
            config,
            on_select,
            headless=settings.mouse_mode_headless,
            timeout=settings.mouse_mode_timeout_seconds,
        )
    finally:
        elements = await store.pop(session_id)

    logger.info(
        "mouse mode finished",
        extra={"session_id": session_id, "selected": len(elements), "timed_out": not completed},
    )
    return MouseModeResult(
        selected_elements=elements,
        session_id=session_id,
        timed_out=not completed,
    )


async def stream_mouse_mode(
    url: str,
    store: SelectionStore,
    config: BrowserConfig,
    settings: Settings,
) -> AsyncGenerator[dict[str, str], None]:
    """Yield SSE-formatted events as the user picks elements.

    Events: ``session`` (id), ``selection`` (each batch), then ``complete``
    with the full list, or ``error``. Closing the stream cancels the picker,
    which closes its browser window and drops the buffer.
    """
    target = normalize_url(url)
    session_id = new_session_id()
    await store.start(session_id)
    logger.info("streaming mouse mode started", extra={"url": target, "session_id": session_id})

    queue: asyncio.Queue[tuple[str, dict[str, Any]] | None] = asyncio.Queue()

    async def on_select(batch: list[SelectedElement]) -> None:
        total = await store.append(session_id, batch)
        await queue.put((
            "selection",
            {"elements": [el.model_dump() for el in batch], "total": total},
        ))

    async def run_and_signal_done() -> None:
        try:
            completed = await pick_elements(
                target,
                config,
                on_select,
                headless=settings.mouse_mode_headless,
                timeout=settings.mouse_mode_timeout_seconds,
            )
            elements = await store.pop(session_id)
            await queue.put((
                "complete",
                {
                    "session_id": session_id,
                    "selected_elements": [el.model_dump() for el in elements],
                    "timed_out": not completed,
                },
            ))
        except asyncio.CancelledError:
            logger.info("streaming mouse mode cancelled", extra={"session_id": session_id})
            await store.pop(session_id)
            raise
        except NavigationError:
            logger.warning(
                "streaming mouse mode navigation failed",
                extra={"url": target, "session_id": session_id},
                exc_info=True,
            )
            await store.pop(session_id)
            await queue.put(("error", {"message": "Failed to load URL"}))
        except Exception:
            logger.exception("streaming mouse mode failed", extra={"session_id": session_id})
            await store.pop(session_id)
            await queue.put(("error", {"message": "Mouse Mode failed"}))
        finally:
            await queue.put(None)  # sentinel

    # keep a strong reference until the picker finishes
    task = asyncio.create_task(run_and_signal_done())
    _picker_tasks.add(task)
    task.add_done_callback(_picker_tasks.discard)

    try:
        yield {"event": "session", "data": json.dumps({"session_id": session_id})}
        while True:
            item = await queue.get()
            if item is None:
                break
            event, data = item
            yield {"event": event, "data": json.dumps(data)}
    finally:
        if not task.done():
            task.cancel()
