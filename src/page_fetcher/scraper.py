"""Scrape orchestration.

Each request gets a fresh browser context from the shared session. The page
is loaded with the "load" wait strategy first; if that attempt fails for any
reason the same page is loaded again waiting for "networkidle". The context
is always closed before the request completes.
"""

from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from urllib.parse import urlparse

import structlog
from playwright.async_api import Page

from page_fetcher.error_messages import get_error
from page_fetcher.errors import InvalidURL, ScrapeFailed
from page_fetcher.models import NavigationResult, ScrapeOutcome, ScrapeRequest
from page_fetcher.navigator import WaitStrategy, load_page
from page_fetcher.session import BrowserSession, browser_session

logger = structlog.get_logger(__name__)

ALLOWED_URL_SCHEMES = {"http", "https"}

# Attempt order: normal load, then wait for network quiescence
WAIT_STRATEGIES: tuple[WaitStrategy, WaitStrategy] = ("load", "networkidle")

PageLoader = Callable[
    [Page, str, WaitStrategy, int, int, str | None], Awaitable[NavigationResult]
]


def is_valid_url(url: str | None) -> bool:
    """Validate URL has an allowed scheme and a network location.

    Only http and https are accepted so that file://, chrome:// and similar
    schemes never reach the browser.

    Args:
        url: URL string to validate.

    Returns:
        True if URL is valid with allowed scheme, False otherwise.
    """
    if not url or not isinstance(url, str):
        return False
    try:
        result = urlparse(url)
        # Accessing port validates it is numeric and in range
        result.port
    except ValueError:
        return False
    return result.scheme in ALLOWED_URL_SCHEMES and bool(result.hostname)


class PageScraper:
    """Runs scrapes against a shared browser session.

    Args:
        session: Browser session providing contexts. Uses the global session if None.
        classify: Maps a non-200 status code to an error message.
        loader: Performs a single navigation attempt.
    """

    def __init__(
        self,
        session: BrowserSession | None = None,
        classify: Callable[[int | None], str | None] = get_error,
        loader: PageLoader = load_page,
    ) -> None:
        self.session = session or browser_session
        self._classify = classify
        self._loader = loader
        self._active_contexts = 0

    @property
    def active_contexts(self) -> int:
        """Number of browser contexts currently held by in-flight scrapes."""
        return self._active_contexts

    @asynccontextmanager
    async def _acquire_context(self, log):
        """Create a context for one request and close it on every exit path."""
        context = await self.session.new_context()
        self._active_contexts += 1
        try:
            yield context
        finally:
            self._active_contexts -= 1
            try:
                await context.close()
            except Exception as e:
                log.warning("context_close_failed", error=str(e))

    async def scrape(self, request: ScrapeRequest) -> ScrapeOutcome:
        """Fetch ``request.url`` and return its content and status.

        Args:
            request: Scrape request with URL and options.

        Returns:
            ScrapeOutcome with the navigation result and page error, if any.

        Raises:
            InvalidURL: If the URL is missing or malformed.
            LaunchError: If the browser cannot be started.
            ScrapeFailed: If both navigation attempts fail.
        """
        if not is_valid_url(request.url):
            raise InvalidURL(request.url)

        log = logger.bind(url=request.url, timeout=request.timeout)
        await self.session.ensure_started()

        async with self._acquire_context(log) as context:
            page = await context.new_page()
            if request.headers:
                await page.set_extra_http_headers(request.headers)

            result = await self._navigate(page, request, log)

        page_error = self._classify(result.status_code) if result.status_code != 200 else None
        if page_error:
            log.warning("page_error_status", status=result.status_code, error=page_error)
        else:
            log.info("scrape_succeeded", status=result.status_code)

        return ScrapeOutcome(result=result, page_error=page_error)

    async def _navigate(self, page: Page, request: ScrapeRequest, log) -> NavigationResult:
        first, second = WAIT_STRATEGIES

        try:
            log.info("navigation_attempt", attempt=1, wait_until=first)
            return await self._load(page, request, first)
        except Exception as e:
            log.warning(
                "navigation_attempt_failed",
                attempt=1,
                wait_until=first,
                error=str(e),
                error_type=type(e).__name__,
            )

        # Same page is reused for the second attempt
        try:
            log.info("navigation_attempt", attempt=2, wait_until=second)
            return await self._load(page, request, second)
        except Exception as e:
            log.error(
                "navigation_attempt_failed",
                attempt=2,
                wait_until=second,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ScrapeFailed(request.url, e) from e

    async def _load(
        self, page: Page, request: ScrapeRequest, wait_until: WaitStrategy
    ) -> NavigationResult:
        return await self._loader(
            page,
            request.url,
            wait_until,
            request.wait_after_load,
            request.timeout,
            request.check_selector,
        )


# Global scraper instance
scraper = PageScraper()
