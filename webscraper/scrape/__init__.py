"""Browser-driven page scraping: loading, scrolling, extraction, export."""

from __future__ import annotations

from .autoscroll import AutoScrollOptions, auto_scroll
from .browser import BrowserConfig, fetch_html, fetch_rendered_html, fetch_static_html, open_page
from .errors import ExtractionError, FetchError, NavigationError, ScrapeError
from .export import flatten_tags, rows_to_csv, tags_to_csv
from .extract import extract_by_selector, extract_by_tag, extract_visible_text, sanitize_key
from .mouse_mode import MouseModeSession, new_session_id, normalize_url, pick_elements

__all__ = [
    "AutoScrollOptions",
    "BrowserConfig",
    "ExtractionError",
    "FetchError",
    "MouseModeSession",
    "NavigationError",
    "ScrapeError",
    "auto_scroll",
    "extract_by_selector",
    "extract_by_tag",
    "extract_visible_text",
    "fetch_html",
    "fetch_rendered_html",
    "fetch_static_html",
    "flatten_tags",
    "new_session_id",
    "normalize_url",
    "open_page",
    "pick_elements",
    "rows_to_csv",
    "sanitize_key",
    "tags_to_csv",
]
