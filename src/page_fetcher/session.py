"""Browser lifecycle management.

A single long-lived Chromium instance is shared by the whole process. Each
scrape gets its own short-lived ``BrowserContext`` (cookies, cache, storage,
identity and request interception) that the caller must close.
"""

import asyncio
from collections.abc import Callable
from typing import Any

import structlog
from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright

from page_fetcher.config import ServiceSettings, settings
from page_fetcher.errors import LaunchError
from page_fetcher.filters import RequestFilter
from page_fetcher.user_agent import random_user_agent

logger = structlog.get_logger(__name__)

# Flags for running unattended inside containers and restricted sandboxes
LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]

DEFAULT_VIEWPORT = {"width": 1280, "height": 800}


class BrowserSession:
    """Owns the shared browser and hands out isolated contexts.

    Launch is single-flight: concurrent ``ensure_started`` calls made while a
    launch is in progress all await that same launch.

    Args:
        config: Optional settings override. Uses global settings if None.
        user_agent_factory: Callable producing a user agent per context.
        request_filter: Interception rules installed on every context.
    """

    def __init__(
        self,
        config: ServiceSettings | None = None,
        user_agent_factory: Callable[[], str] = random_user_agent,
        request_filter: RequestFilter | None = None,
    ) -> None:
        self.config = config or settings
        self._user_agent_factory = user_agent_factory
        self._request_filter = request_filter or RequestFilter.from_settings(
            self.config.block_media
        )
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._launch_task: asyncio.Task | None = None
        self._closed = False

    @property
    def is_started(self) -> bool:
        return self._browser is not None

    @property
    def request_filter(self) -> RequestFilter:
        return self._request_filter

    async def ensure_started(self) -> Browser:
        """Launch the browser if it is not running yet.

        Returns:
            The shared Browser instance.

        Raises:
            LaunchError: If the browser cannot be started or the session
                has already been shut down.
        """
        if self._closed:
            raise LaunchError("Browser session has been shut down")
        if self._browser is not None:
            return self._browser

        if self._launch_task is None:
            self._launch_task = asyncio.create_task(self._launch())
        task = self._launch_task

        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if task.cancelled() and not (current and current.cancelling()):
                raise LaunchError("Browser launch was cancelled by shutdown") from None
            raise
        finally:
            # A failed launch is not cached; the next caller starts a new one
            if task.done() and (task.cancelled() or task.exception() is not None):
                if self._launch_task is task:
                    self._launch_task = None

    async def _launch(self) -> Browser:
        logger.info(
            "starting_browser",
            headless=self.config.headless,
            block_media=self.config.block_media,
            proxy=self.config.proxy_server,
        )

        playwright: Playwright | None = None
        try:
            playwright = await async_playwright().start()
            browser = await playwright.chromium.launch(
                headless=self.config.headless,
                args=LAUNCH_ARGS,
            )
        except BaseException as e:
            # Cancellation lands here too; the driver must not outlive the launch
            if playwright is not None:
                try:
                    await playwright.stop()
                except Exception as stop_error:
                    logger.warning("playwright_stop_failed", error=str(stop_error))
            if not isinstance(e, Exception):
                logger.warning("browser_start_cancelled")
                raise
            logger.error("browser_start_failed", error=str(e))
            raise LaunchError(f"Failed to start browser: {e}") from e

        self._playwright = playwright
        self._browser = browser
        logger.info("browser_started")
        return browser

    async def new_context(self) -> BrowserContext:
        """Create an isolated browsing context with request filtering installed.

        Raises:
            LaunchError: If the session has not been started.
        """
        browser = self._browser
        if browser is None:
            raise LaunchError("Browser session is not started")

        context_options: dict[str, Any] = {
            "user_agent": self._user_agent_factory(),
            "viewport": dict(DEFAULT_VIEWPORT),
        }
        proxy = self.config.proxy
        if proxy:
            context_options["proxy"] = proxy

        context = await browser.new_context(**context_options)
        try:
            await self._request_filter.install(context)
        except Exception:
            await context.close()
            raise

        logger.debug(
            "context_created",
            user_agent=context_options["user_agent"],
            proxy=bool(proxy),
        )
        return context

    async def shutdown(self) -> None:
        """Close the browser and the Playwright driver. Safe to call repeatedly."""
        self._closed = True

        launch_task, self._launch_task = self._launch_task, None
        if launch_task is not None and not launch_task.done():
            launch_task.cancel()
            # Let the launch stop its own driver before teardown continues
            await asyncio.wait([launch_task])

        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None

        if browser is None and playwright is None:
            return

        logger.info("stopping_browser")
        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                logger.error("browser_close_error", error=str(e))
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                logger.error("playwright_stop_error", error=str(e))
        logger.info("browser_stopped")


# Global session instance
browser_session = BrowserSession()
