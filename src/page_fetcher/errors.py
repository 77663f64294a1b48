"""Exceptions raised by the page fetcher core."""


class PageFetcherError(Exception):
    """Base class for page fetcher failures."""

    pass


class InvalidURL(PageFetcherError):
    """Raised when the requested URL is missing or malformed.

    Attributes:
        url: The rejected URL value.
    """

    def __init__(self, url: str | None) -> None:
        self.url = url
        super().__init__(f"Invalid URL: {url!r}")


class LaunchError(PageFetcherError):
    """Raised when the browser cannot be started."""

    pass


class NavigationError(PageFetcherError):
    """Raised when a page navigation fails."""

    pass


class NavigationTimeout(NavigationError):
    """Raised when a navigation exceeds its timeout."""

    pass


class SelectorNotFound(PageFetcherError):
    """Raised when the required selector never appears on the page.

    Attributes:
        selector: The selector that was awaited.
    """

    def __init__(self, selector: str) -> None:
        self.selector = selector
        super().__init__(f"Required selector not found: {selector}")


class ScrapeFailed(PageFetcherError):
    """Raised when every navigation attempt for a URL has failed.

    Attributes:
        url: The URL that could not be fetched.
        cause: Error raised by the final attempt.
    """

    def __init__(self, url: str, cause: BaseException) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"All navigation attempts failed for {url}: {cause}")
