"""Request/response models for the page fetcher service.

The HTTP models mirror the Playwright scrape service contract used by
Firecrawl; the dataclasses carry results between the core components.
"""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ScrapeRequest(BaseModel):
    """Scrape request body."""

    url: str | None = Field(
        default=None,
        description="URL to scrape",
    )
    wait_after_load: int = Field(
        default=0,
        ge=0,
        description="Milliseconds to wait after page load",
    )
    timeout: int = Field(
        default=15000,
        gt=0,
        description="Page load timeout in milliseconds",
    )
    headers: dict[str, str] | None = Field(
        default=None,
        description="Custom headers to send with every request from the page",
    )
    check_selector: str | None = Field(
        default=None,
        description="CSS selector to wait for before returning content",
    )

    @field_validator("url", mode="before")
    @classmethod
    def non_string_url_as_missing(cls, v: Any) -> str | None:
        """Any non-string URL is treated as missing and rejected with a 400."""
        return v if isinstance(v, str) else None


class ScrapeSuccessResponse(BaseModel):
    """Successful scrape response."""

    content: str = Field(
        ...,
        description="Rendered HTML, or the raw body for JSON/plain-text responses",
    )
    pageStatusCode: int | None = Field(
        ...,
        description="HTTP status code of the page response",
    )
    contentType: str | None = Field(
        default=None,
        description="Content-Type header from the response",
    )
    pageError: str | None = Field(
        default=None,
        description="Error message if page returned a non-200 status",
    )


class ScrapeErrorResponse(BaseModel):
    """Error response."""

    error: str = Field(
        ...,
        description="Error message describing what went wrong",
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(
        default="healthy",
        description="Service health status",
    )


@dataclass
class NavigationResult:
    """Result of a single successful page load.

    Attributes:
        content: Document body returned to the caller.
        status_code: Response status, or None when no response was received.
        headers: All response headers, or None without a response.
        content_type: Content-Type response header, if any.
    """

    content: str
    status_code: int | None = None
    headers: dict[str, str] | None = None
    content_type: str | None = None


@dataclass
class ScrapeOutcome:
    """Final result of a scrape: the navigation result plus its classification."""

    result: NavigationResult
    page_error: str | None = None

    @property
    def content(self) -> str:
        return self.result.content

    @property
    def status_code(self) -> int | None:
        return self.result.status_code

    @property
    def content_type(self) -> str | None:
        return self.result.content_type

    def to_response(self) -> dict:
        """Build the JSON response body, omitting optional fields without values."""
        body: dict = {
            "content": self.content,
            "pageStatusCode": self.status_code,
        }
        if self.content_type:
            body["contentType"] = self.content_type
        if self.page_error:
            body["pageError"] = self.page_error
        return body
