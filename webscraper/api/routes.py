"""Scraping and mouse-mode endpoint handlers."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from sse_starlette.sse import EventSourceResponse

from webscraper.api.deps import get_browser_config, get_selection_store, get_settings_state
from webscraper.api.schemas import (
    CookieScrapeRequest,
    CookieScrapeResult,
    MouseModeRequest,
    MouseModeResult,
    MouseModeUpdate,
    ScrapeRequest,
    SelectorRequest,
    SelectorResult,
    TagScrapeResult,
)
from webscraper.api.service import (
    run_mouse_mode,
    scrape_page_by_tag,
    scrape_selector,
    scrape_with_cookies,
    stream_mouse_mode,
)
from webscraper.auth.dependencies import require_user
from webscraper.config import Settings
from webscraper.scrape import BrowserConfig, NavigationError, ScrapeError, rows_to_csv
from webscraper.store.redis import SelectionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", dependencies=[Depends(require_user)])


def _scrape_failed(exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": "Scraping failed", "detail": str(exc)},
    )


@router.post("/scrape", response_model=TagScrapeResult)
async def scrape_page(
    body: ScrapeRequest,
    config: BrowserConfig = Depends(get_browser_config),
):
    try:
        return await scrape_page_by_tag(body.url, config)
    except Exception as exc:
        logger.exception("full page scrape failed", extra={"url": body.url})
        return _scrape_failed(exc)


@router.post("/scrape-login", response_model=CookieScrapeResult)
async def scrape_login(
    body: CookieScrapeRequest,
    config: BrowserConfig = Depends(get_browser_config),
):
    try:
        text = await scrape_with_cookies(body, config)
    except Exception as exc:
        logger.exception("cookie scrape failed", extra={"url": body.target_url})
        return _scrape_failed(exc)
    return CookieScrapeResult(text=text)


@router.post("/selector", response_model=SelectorResult)
async def selector_scrape(
    body: SelectorRequest,
    config: BrowserConfig = Depends(get_browser_config),
):
    try:
        rows = await scrape_selector(body, config)
    except ScrapeError as exc:
        logger.warning("selector scrape failed", extra={"url": str(body.url)}, exc_info=True)
        return JSONResponse(status_code=400, content={"error": str(exc)})
    except Exception as exc:
        logger.exception("selector scrape failed", extra={"url": str(body.url)})
        return JSONResponse(status_code=400, content={"error": str(exc) or "Unknown error"})

    if not rows:
        return SelectorResult(message="No matches found", count=0, rows=[])

    if body.format == "csv":
        filename = f"selector_mode_{int(time.time() * 1000)}.csv"
        return Response(
            content=rows_to_csv(rows),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    return SelectorResult(message="OK", count=len(rows), rows=rows)


@router.post("/mouse-mode", response_model=MouseModeResult)
async def mouse_mode(
    body: MouseModeRequest,
    store: SelectionStore = Depends(get_selection_store),
    config: BrowserConfig = Depends(get_browser_config),
    settings: Settings = Depends(get_settings_state),
):
    try:
        return await run_mouse_mode(body.url, store, config, settings)
    except NavigationError as exc:
        logger.warning("mouse mode navigation failed", extra={"url": body.url}, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to load URL", "detail": str(exc)},
        )
    except Exception as exc:
        logger.exception("mouse mode failed", extra={"url": body.url})
        return JSONResponse(
            status_code=500,
            content={"error": "Mouse Mode failed", "detail": str(exc)},
        )


@router.get("/mouse-mode", response_model=MouseModeUpdate)
async def mouse_mode_update(
    session_id: str = "default",
    store: SelectionStore = Depends(get_selection_store),
):
    elements = await store.get(session_id)
    return MouseModeUpdate(selected_elements=elements)


@router.post("/mouse-mode/stream")
async def mouse_mode_stream(
    body: MouseModeRequest,
    store: SelectionStore = Depends(get_selection_store),
    config: BrowserConfig = Depends(get_browser_config),
    settings: Settings = Depends(get_settings_state),
):
    return EventSourceResponse(stream_mouse_mode(body.url, store, config, settings))
