from unittest.mock import AsyncMock, MagicMock

import pytest

from page_fetcher.config import ServiceSettings


def _make_response(status=200, headers=None, body=b""):
    response = MagicMock()
    response.status = status
    response.all_headers = AsyncMock(
        return_value=headers if headers is not None else {"content-type": "text/html"}
    )
    response.body = AsyncMock(return_value=body)
    return response


@pytest.fixture
def make_response():
    """Factory for mocked Playwright responses."""
    return _make_response


@pytest.fixture
def make_settings():
    """Factory for settings isolated from any local .env file."""

    def factory(**overrides):
        return ServiceSettings(_env_file=None, **overrides)

    return factory


@pytest.fixture
def mock_page():
    """Mock Playwright page that loads a small HTML document."""
    page = MagicMock()
    page.goto = AsyncMock(return_value=_make_response())
    page.content = AsyncMock(return_value="<html><body>Test</body></html>")
    page.wait_for_selector = AsyncMock()
    page.set_extra_http_headers = AsyncMock()
    page.close = AsyncMock()
    return page


@pytest.fixture
def mock_context(mock_page):
    """Mock browser context handing out ``mock_page``."""
    context = MagicMock()
    context.new_page = AsyncMock(return_value=mock_page)
    context.route = AsyncMock()
    context.close = AsyncMock()
    return context


@pytest.fixture
def mock_session(mock_context):
    """Mock browser session handing out ``mock_context``."""
    session = MagicMock()
    session.ensure_started = AsyncMock()
    session.new_context = AsyncMock(return_value=mock_context)
    session.shutdown = AsyncMock()
    return session
