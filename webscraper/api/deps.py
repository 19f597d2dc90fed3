"""Accessors for the objects the lifespan attaches to ``app.state``."""

from fastapi import Request

from webscraper.config import Settings
from webscraper.scrape.browser import BrowserConfig
from webscraper.store.redis import SelectionStore, UserStore


def get_settings_state(request: Request) -> Settings:
    return request.app.state.settings


def get_user_store(request: Request) -> UserStore:
    return request.app.state.users


def get_selection_store(request: Request) -> SelectionStore:
    return request.app.state.selections


def get_browser_config(request: Request) -> BrowserConfig:
    return request.app.state.browser_config
