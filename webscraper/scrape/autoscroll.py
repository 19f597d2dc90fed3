"""Scroll a page to the bottom until it stops growing."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

logger = logging.getLogger(__name__)

LOAD_MORE_SELECTORS: tuple[str, ...] = (
    'button:has-text("Load More")',
    'button:has-text("Show More")',
    'a:has-text("Load More")',
    'a:has-text("Show More")',
    '[class*="load-more"]',
)

HEIGHT_JS = "document.body.scrollHeight"
SCROLL_JS = "window.scrollTo(0, document.body.scrollHeight)"


@dataclass(frozen=True)
class AutoScrollOptions:
    """Limits and (millisecond) delay ranges for ``auto_scroll``."""

    max_scrolls: int = 100
    min_delay_ms: int = 500
    max_delay_ms: int = 2000
    settle_min_ms: int = 2000
    settle_max_ms: int = 4000
    click_timeout_ms: int = 1000
    load_more_selectors: tuple[str, ...] = LOAD_MORE_SELECTORS


def _random_delay(low: int, high: int) -> int:
    return random.randint(low, high)


async def _click_load_more(page: Page, options: AutoScrollOptions) -> bool:
    """Click the first visible "load more" control. Returns whether one was clicked."""
    for selector in options.load_more_selectors:
        button = page.locator(selector).first
        if not await button.is_visible():
            continue
        try:
            await page.wait_for_timeout(_random_delay(options.min_delay_ms, options.max_delay_ms))
            await button.click(timeout=options.click_timeout_ms)
        except PlaywrightError:
            # detached or covered; try the next candidate
            logger.debug("load more click failed", extra={"selector": selector})
            continue
        logger.debug("load more clicked", extra={"selector": selector})
        return True
    return False


async def auto_scroll(page: Page, options: AutoScrollOptions | None = None) -> int:
    """Scroll *page* until its height stops changing, clicking "load more" buttons.

    Handles both infinite scroll and paginated "load more" pages. The loop
    ends when the height is unchanged across a scroll and a longer settle
    wait, or after ``options.max_scrolls`` iterations.

    Returns the number of scroll iterations performed.
    """
    options = options or AutoScrollOptions()
    last_height = await page.evaluate(HEIGHT_JS)
    scrolls = 0

    while scrolls < options.max_scrolls:
        clicked = await _click_load_more(page, options)

        await page.evaluate(SCROLL_JS)
        await page.wait_for_timeout(_random_delay(options.min_delay_ms, options.max_delay_ms))

        new_height = await page.evaluate(HEIGHT_JS)
        if new_height == last_height and not clicked:
            await page.wait_for_timeout(_random_delay(options.settle_min_ms, options.settle_max_ms))
            final_height = await page.evaluate(HEIGHT_JS)
            if final_height == last_height:
                break

        last_height = new_height
        scrolls += 1

    logger.debug("auto scroll finished", extra={"scrolls": scrolls, "height": last_height})
    return scrolls
