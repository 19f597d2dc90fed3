"""FastAPI app entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from webscraper.api.auth_routes import router as auth_router
from webscraper.api.routes import router as scrape_router
from webscraper.config import get_settings
from webscraper.logging_config import setup_logging
from webscraper.scrape import BrowserConfig
from webscraper.store.redis import SelectionStore, UserStore, create_redis_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # Initialize logging FIRST so all subsequent operations produce JSON logs
    setup_logging(settings.log_level)
    logger.info("starting scraper service")

    redis_client = await create_redis_client(settings.redis_url)

    # Attach to app state for dependency injection
    app.state.settings = settings
    app.state.users = UserStore(redis_client)
    app.state.selections = SelectionStore(redis_client, ttl=settings.mouse_session_ttl_seconds)
    app.state.browser_config = BrowserConfig.from_settings(settings)

    logger.info(
        "scraper service ready",
        extra={
            "browser_headless": settings.browser_headless,
            "mouse_mode_headless": settings.mouse_mode_headless,
            "max_scrolls": settings.max_scrolls,
        },
    )

    yield

    logger.info("shutting down scraper service")
    await redis_client.aclose()


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("request rejected", extra={"path": request.url.path, "errors": len(exc.errors())})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "detail": jsonable_encoder(exc.errors())},
    )


def create_app() -> FastAPI:
    app = FastAPI(title="Scraper Service", lifespan=lifespan)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.include_router(auth_router)
    app.include_router(scrape_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
