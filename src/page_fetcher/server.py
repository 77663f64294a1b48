"""FastAPI server for the page fetcher service.

Exposes a Firecrawl-compatible ``/scrape`` endpoint backed by a shared
headless Chromium instance.
"""

from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import Depends, FastAPI, status
from fastapi.responses import JSONResponse

from page_fetcher.config import settings
from page_fetcher.errors import InvalidURL, LaunchError
from page_fetcher.logging_config import configure_logging
from page_fetcher.middleware import RequestIDMiddleware
from page_fetcher.models import (
    HealthResponse,
    ScrapeErrorResponse,
    ScrapeRequest,
    ScrapeSuccessResponse,
)
from page_fetcher.scraper import PageScraper, is_valid_url, scraper
from page_fetcher.session import browser_session
from page_fetcher.shutdown import get_shutdown_manager

INVALID_URL_MESSAGE = "URL is invalid or missing"
FETCH_FAILED_MESSAGE = "An error occurred while fetching the page."

configure_logging()
logger = structlog.get_logger(__name__)


def get_scraper() -> PageScraper:
    """Scraper dependency, overridable in tests."""
    return scraper


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the browser with the app and tear it down once on shutdown."""
    manager = get_shutdown_manager()
    # No-op when the lifespan is entered again with the same manager
    manager.register_cleanup(browser_session.shutdown)

    logger.info(
        "page_fetcher_starting",
        port=settings.port,
        block_media=settings.block_media,
        proxy=settings.proxy_server,
    )
    try:
        await browser_session.ensure_started()
    except LaunchError as e:
        # Requests retry the launch lazily
        logger.error("browser_launch_at_startup_failed", error=str(e))

    yield

    logger.info("page_fetcher_stopping", abandoned_contexts=scraper.active_contexts)
    await manager.initiate_shutdown()
    logger.info("page_fetcher_stopped")


app = FastAPI(
    title="Page Fetcher Service",
    description="Headless browser page fetching with ad and media blocking",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(RequestIDMiddleware)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy")


@app.post(
    "/scrape",
    response_model=ScrapeSuccessResponse,
    responses={
        200: {"model": ScrapeSuccessResponse},
        400: {"model": ScrapeErrorResponse},
        500: {"model": ScrapeErrorResponse},
    },
)
async def scrape_url(
    request: ScrapeRequest,
    page_scraper: PageScraper = Depends(get_scraper),
) -> JSONResponse:
    """Scrape a URL and return its rendered content.

    Returns the DOM after JavaScript execution, or the raw body for JSON and
    plain-text responses. Failure details are logged, never returned.
    """
    log = logger.bind(url=request.url)
    log.info(
        "scrape_request_received",
        wait_after_load=request.wait_after_load,
        timeout=request.timeout,
        headers=request.headers,
        check_selector=request.check_selector,
    )

    if not is_valid_url(request.url):
        log.info("scrape_request_rejected")
        return _error(status.HTTP_400_BAD_REQUEST, INVALID_URL_MESSAGE)

    if get_shutdown_manager().is_shutting_down:
        log.warning("scrape_request_rejected_shutting_down")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, FETCH_FAILED_MESSAGE)

    try:
        outcome = await page_scraper.scrape(request)
    except InvalidURL:
        return _error(status.HTTP_400_BAD_REQUEST, INVALID_URL_MESSAGE)
    except Exception as e:
        log.error("scrape_request_failed", error=str(e), error_type=type(e).__name__)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, FETCH_FAILED_MESSAGE)

    log.info(
        "scrape_request_completed",
        status=outcome.status_code,
        content_length=len(outcome.content),
        page_error=outcome.page_error,
    )
    return JSONResponse(status_code=status.HTTP_200_OK, content=outcome.to_response())


def main() -> None:
    """Run the page fetcher service."""
    uvicorn.run(
        "page_fetcher.server:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        access_log=False,
        log_config=None,
    )


if __name__ == "__main__":
    main()
