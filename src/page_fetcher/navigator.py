"""Single page load attempt and result extraction."""

import asyncio
from typing import Literal

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, Response
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from page_fetcher.errors import NavigationError, NavigationTimeout, SelectorNotFound
from page_fetcher.models import NavigationResult

logger = structlog.get_logger(__name__)

WaitStrategy = Literal["load", "networkidle"]

# Content types returned as the raw response body instead of the rendered DOM
RAW_BODY_CONTENT_TYPES = ("application/json", "text/plain")


def find_content_type(headers: dict[str, str]) -> str | None:
    """Return the Content-Type header value, matching the name case-insensitively."""
    return next(
        (v for k, v in headers.items() if k.lower() == "content-type"),
        None,
    )


def is_raw_body_content_type(content_type: str | None) -> bool:
    if not content_type:
        return False
    lowered = content_type.lower()
    return any(ct in lowered for ct in RAW_BODY_CONTENT_TYPES)


def charset_from_content_type(content_type: str, default: str = "utf-8") -> str:
    for part in content_type.split(";"):
        if part.strip().lower().startswith("charset="):
            return part.split("=", 1)[1].strip().strip("\"'") or default
    return default


def decode_body(body: bytes, content_type: str) -> str:
    """Decode a raw response body using the declared charset, falling back to UTF-8."""
    charset = charset_from_content_type(content_type)
    try:
        return body.decode(charset)
    except (UnicodeDecodeError, LookupError):
        return body.decode("utf-8", errors="replace")


async def load_page(
    page: Page,
    url: str,
    wait_until: WaitStrategy,
    wait_after_load: int,
    timeout: int,
    check_selector: str | None,
) -> NavigationResult:
    """Navigate ``page`` to ``url`` once and extract the result.

    Args:
        page: Playwright page to navigate.
        url: Target URL.
        wait_until: "load" or "networkidle".
        wait_after_load: Fixed settle delay in milliseconds after navigation.
        timeout: Navigation and selector timeout in milliseconds.
        check_selector: Optional selector that must appear before extraction.

    Returns:
        NavigationResult for the loaded page.

    Raises:
        NavigationTimeout: If navigation exceeds ``timeout``.
        NavigationError: If navigation fails for any other reason.
        SelectorNotFound: If ``check_selector`` never appears.
    """
    log = logger.bind(url=url, wait_until=wait_until, timeout=timeout)
    log.info("navigation_started")

    try:
        response: Response | None = await page.goto(
            url,
            wait_until=wait_until,
            timeout=timeout,
        )
    except PlaywrightTimeoutError as e:
        raise NavigationTimeout(f"Navigation to {url} timed out after {timeout}ms") from e
    except PlaywrightError as e:
        raise NavigationError(f"Navigation to {url} failed: {e.message}") from e

    if wait_after_load > 0:
        await asyncio.sleep(wait_after_load / 1000)

    if check_selector:
        try:
            await page.wait_for_selector(check_selector, timeout=timeout)
        except Exception as e:
            log.warning("selector_not_found", selector=check_selector, error=str(e))
            raise SelectorNotFound(check_selector) from e

    headers: dict[str, str] | None = None
    content_type: str | None = None
    if response is not None:
        headers = await response.all_headers()
        content_type = find_content_type(headers)

    if response is not None and is_raw_body_content_type(content_type):
        body = await response.body()
        content = decode_body(body, content_type)
    else:
        content = await page.content()

    status_code = response.status if response is not None else None
    log.info(
        "navigation_completed",
        status=status_code,
        content_type=content_type,
        content_length=len(content),
    )

    return NavigationResult(
        content=content,
        status_code=status_code,
        headers=headers,
        content_type=content_type,
    )
