"""Exceptions raised by the scrape submodule."""

from __future__ import annotations


class ScrapeError(Exception):
    """Base class for scraping failures."""


class FetchError(ScrapeError):
    """The page could not be retrieved."""


class NavigationError(ScrapeError):
    """The browser failed to load the target URL."""


class ExtractionError(ScrapeError):
    """The markup could not be queried (e.g. an invalid CSS selector)."""
