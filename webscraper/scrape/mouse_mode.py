"""Interactive element picker running inside a visible browser window.

The picker script highlights the element under the cursor, records each
clicked element as ``{text, tag}`` and hands it to the server through an
exposed ``sendSelectedData`` binding. Enter or Escape ends the session via
``setKeypressHandled``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Frame, Page

from webscraper.api.schemas import SelectedElement

from .browser import BrowserConfig, goto, open_page

logger = logging.getLogger(__name__)

SelectionCallback = Callable[[list[SelectedElement]], Awaitable[None]]

PICKER_JS = r"""
() => {
  const win = window;
  const HIGHLIGHT = "3px dashed #ff0000";
  const SELECTED = "3px solid #0066ff";
  const SELECTED_CLASS = "picker-selected-element";

  const restore = (el) => {
    if (!el) return;
    if (win.pickerOriginalBorder) el.style.border = win.pickerOriginalBorder;
    else el.style.removeProperty("border");
    if (win.pickerOriginalCursor) el.style.cursor = win.pickerOriginalCursor;
    else el.style.removeProperty("cursor");
  };

  const detach = () => {
    if (win.pickerOnMouseOver) document.removeEventListener("mouseover", win.pickerOnMouseOver);
    if (win.pickerOnMouseOut) document.removeEventListener("mouseout", win.pickerOnMouseOut);
    if (win.pickerOnClick) document.removeEventListener("click", win.pickerOnClick, true);
    if (win.pickerOnKeyDown) document.removeEventListener("keydown", win.pickerOnKeyDown);
  };

  const cleanup = (preserveSelected) => {
    detach();
    if (win.pickerObserver) win.pickerObserver.disconnect();
    if (!preserveSelected) {
      document.querySelectorAll("." + SELECTED_CLASS).forEach((el) => {
        el.style.removeProperty("border");
        el.classList.remove(SELECTED_CLASS);
      });
    }
    restore(win.pickerLastHighlighted);
    win.pickerLastHighlighted = null;
    win.pickerOriginalBorder = null;
    win.pickerOriginalCursor = null;
    win.pickerOnMouseOver = undefined;
    win.pickerOnMouseOut = undefined;
    win.pickerOnClick = undefined;
    win.pickerOnKeyDown = undefined;
    win.pickerObserver = undefined;
  };

  const onMouseOver = (e) => {
    const target = e.target;
    if (!target || target === document.body || target.classList.contains(SELECTED_CLASS)) return;
    if (win.pickerLastHighlighted && win.pickerLastHighlighted !== target) {
      restore(win.pickerLastHighlighted);
    }
    win.pickerLastHighlighted = target;
    win.pickerOriginalBorder = target.style.border;
    win.pickerOriginalCursor = target.style.cursor;
    target.style.border = HIGHLIGHT;
    target.style.cursor = "crosshair";
  };

  const onMouseOut = (e) => {
    const target = e.target;
    if (target === win.pickerLastHighlighted && !target.classList.contains(SELECTED_CLASS)) {
      restore(target);
      win.pickerLastHighlighted = null;
      win.pickerOriginalBorder = null;
      win.pickerOriginalCursor = null;
    }
  };

  const onClick = (e) => {
    e.preventDefault();
    e.stopPropagation();
    const target = e.target;
    if (!target || target === document.body || target.classList.contains(SELECTED_CLASS)) return;

    const tag = target.tagName.toLowerCase();
    let text = (target.innerText || "").trim();
    if (tag === "img") text = target.getAttribute("src") || "";
    else if (tag === "a") text = target.getAttribute("href") || text;

    target.style.border = SELECTED;
    target.classList.add(SELECTED_CLASS);
    if (win.pickerLastHighlighted === target) {
      win.pickerLastHighlighted = null;
      win.pickerOriginalBorder = null;
      win.pickerOriginalCursor = null;
    }
    win.sendSelectedData([{ text, tag }]);
  };

  const onKeyDown = (e) => {
    if (e.key === "Enter" || e.key === "Escape") {
      cleanup(false);
      win.sendSelectedData([]);
      win.setKeypressHandled();
    }
  };

  const attach = () => {
    detach();
    win.pickerOnMouseOver = onMouseOver;
    win.pickerOnMouseOut = onMouseOut;
    win.pickerOnClick = onClick;
    win.pickerOnKeyDown = onKeyDown;
    document.addEventListener("mouseover", onMouseOver);
    document.addEventListener("mouseout", onMouseOut);
    document.addEventListener("click", onClick, true);
    document.addEventListener("keydown", onKeyDown);
  };

  const start = () => {
    if (win.pickerOnMouseOver) cleanup(true);
    win.pickerLastHighlighted = null;
    win.pickerOriginalBorder = null;
    win.pickerOriginalCursor = null;
    attach();
    // pages that rebuild their DOM can drop document listeners
    win.pickerObserver = new MutationObserver(() => {
      if (win.pickerOnKeyDown) attach();
    });
    win.pickerObserver.observe(document.body, { childList: true, subtree: true });
  };

  if (document.readyState === "loading") {
    document.addEventListener("DOMContentLoaded", start, { once: true });
  } else {
    start();
  }
}
"""


def new_session_id() -> str:
    """Millisecond timestamp, as used for mouse-mode session keys."""
    return str(int(time.time() * 1000))


def normalize_url(url: str) -> str:
    url = url.strip()
    return url if url.startswith("http") else f"https://{url}"


def _ignored_navigation(url: str) -> bool:
    return "about:blank" in url or url.startswith("file://")


class MouseModeSession:
    """Wires the picker bindings into *page* and tracks session completion."""

    def __init__(self, page: Page, on_select: SelectionCallback) -> None:
        self._page = page
        self._on_select = on_select
        self._finished = asyncio.Event()
        self._in_flight: set[asyncio.Task[Any]] = set()

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    async def attach(self) -> None:
        """Expose the page bindings and re-inject the picker after navigations."""
        await self._page.expose_function("sendSelectedData", self._receive)
        await self._page.expose_function("setKeypressHandled", self._finish)
        self._page.on("framenavigated", self._on_navigated)
        self._page.on("close", self._on_close)

    async def inject(self) -> None:
        await self._page.evaluate(PICKER_JS)

    async def wait(self, timeout: float | None = None) -> bool:
        """Block until Enter/Escape (or the window closes). ``False`` on timeout.

        Playwright runs each binding call as its own task, so a click sent just
        before Enter may still be storing its batch. Those calls are awaited
        before returning.
        """
        try:
            await asyncio.wait_for(self._finished.wait(), timeout)
        except asyncio.TimeoutError:
            completed = False
        else:
            completed = True
        await self._drain()
        return completed

    async def _drain(self) -> None:
        if self._in_flight:
            await asyncio.wait(set(self._in_flight))

    async def _receive(self, elements: list[dict[str, Any]] | None) -> None:
        task = asyncio.current_task()
        if task is not None:
            self._in_flight.add(task)
        try:
            batch = [SelectedElement.model_validate(el) for el in elements or []]
            if not batch:
                return
            logger.debug("elements selected", extra={"count": len(batch)})
            await self._on_select(batch)
        finally:
            self._in_flight.discard(task)

    def _finish(self) -> None:
        logger.debug("picker keypress received")
        self._finished.set()

    def _on_close(self, _page: Page) -> None:
        self._finished.set()

    async def _on_navigated(self, frame: Frame) -> None:
        if frame != self._page.main_frame:
            return
        if _ignored_navigation(frame.url):
            logger.debug("skipping navigation", extra={"url": frame.url})
            return
        try:
            await self.inject()
        except PlaywrightError:
            logger.warning("picker re-injection failed", extra={"url": frame.url}, exc_info=True)


async def pick_elements(
    url: str,
    config: BrowserConfig,
    on_select: SelectionCallback,
    *,
    headless: bool = False,
    timeout: float | None = None,
) -> bool:
    """Open *url* with the picker active until the user finishes.

    Returns ``True`` if the session ended by keypress or window close,
    ``False`` if *timeout* elapsed first. Navigation failures raise
    ``NavigationError``.
    """
    async with open_page(config, headless=headless) as page:
        session = MouseModeSession(page, on_select)
        await session.attach()
        await goto(page, url, config, "load")
        await session.inject()
        logger.info("mouse mode active", extra={"url": url})
        completed = await session.wait(timeout)
    return completed
