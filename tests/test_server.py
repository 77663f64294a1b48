"""Tests for the HTTP surface."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from page_fetcher.errors import LaunchError, NavigationTimeout, ScrapeFailed
from page_fetcher.models import NavigationResult, ScrapeOutcome, ScrapeRequest
from page_fetcher.scraper import PageScraper
from page_fetcher.server import (
    FETCH_FAILED_MESSAGE,
    INVALID_URL_MESSAGE,
    app,
    get_scraper,
)
from page_fetcher.shutdown import ShutdownManager


@pytest.fixture
def fake_scraper():
    scraper = MagicMock()
    scraper.scrape = AsyncMock(
        return_value=ScrapeOutcome(
            result=NavigationResult(
                content="<html><body>Hello</body></html>",
                status_code=200,
                headers={"content-type": "text/html"},
                content_type="text/html",
            )
        )
    )
    return scraper


@pytest.fixture
def client(fake_scraper):
    """Test client without lifespan; the scraper dependency is overridden."""
    app.dependency_overrides[get_scraper] = lambda: fake_scraper
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestScrapeValidation:
    """Test request validation on POST /scrape."""

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"url": ""},
            {"url": "not a url"},
            {"url": "ftp://example.com/file"},
            {"url": None},
            {"url": 123},
            {"url": ["https://example.com"]},
            {"url": {"href": "https://example.com"}},
        ],
    )
    def test_invalid_or_missing_url(self, client, fake_scraper, payload):
        response = client.post("/scrape", json=payload)

        assert response.status_code == 400
        assert response.json() == {"error": INVALID_URL_MESSAGE}
        fake_scraper.scrape.assert_not_awaited()

    def test_negative_timeout_rejected(self, client, fake_scraper):
        response = client.post("/scrape", json={"url": "https://example.com", "timeout": -1})

        assert response.status_code == 422
        fake_scraper.scrape.assert_not_awaited()

    def test_request_fields_forwarded(self, client, fake_scraper):
        client.post(
            "/scrape",
            json={
                "url": "https://example.com",
                "wait_after_load": 500,
                "timeout": 20000,
                "headers": {"Cookie": "a=b"},
                "check_selector": "#content",
            },
        )

        request = fake_scraper.scrape.await_args.args[0]
        assert isinstance(request, ScrapeRequest)
        assert request.wait_after_load == 500
        assert request.timeout == 20000
        assert request.headers == {"Cookie": "a=b"}
        assert request.check_selector == "#content"

    def test_defaults_applied(self, client, fake_scraper):
        client.post("/scrape", json={"url": "https://example.com"})

        request = fake_scraper.scrape.await_args.args[0]
        assert request.wait_after_load == 0
        assert request.timeout == 15000
        assert request.headers is None
        assert request.check_selector is None


class TestScrapeResponses:
    """Test response bodies for each outcome."""

    def test_success(self, client):
        response = client.post("/scrape", json={"url": "https://example.com"})

        assert response.status_code == 200
        assert response.json() == {
            "content": "<html><body>Hello</body></html>",
            "pageStatusCode": 200,
            "contentType": "text/html",
        }

    def test_page_error_included_for_non_200(self, client, fake_scraper):
        fake_scraper.scrape.return_value = ScrapeOutcome(
            result=NavigationResult(content="missing", status_code=404, content_type="text/html"),
            page_error="Not Found",
        )

        response = client.post("/scrape", json={"url": "https://example.com/missing"})

        assert response.status_code == 200
        body = response.json()
        assert body["pageStatusCode"] == 404
        assert body["pageError"] == "Not Found"

    def test_missing_status_and_content_type(self, client, fake_scraper):
        fake_scraper.scrape.return_value = ScrapeOutcome(
            result=NavigationResult(content="<html></html>"),
            page_error="No response received",
        )

        response = client.post("/scrape", json={"url": "https://example.com"})

        assert response.json() == {
            "content": "<html></html>",
            "pageStatusCode": None,
            "pageError": "No response received",
        }

    @pytest.mark.parametrize(
        "error",
        [
            ScrapeFailed("https://example.com", NavigationTimeout("secret detail")),
            LaunchError("secret detail"),
            RuntimeError("secret detail"),
        ],
    )
    def test_failures_return_generic_500(self, client, fake_scraper, error):
        fake_scraper.scrape.side_effect = error

        response = client.post("/scrape", json={"url": "https://example.com"})

        assert response.status_code == 500
        assert response.json() == {"error": FETCH_FAILED_MESSAGE}
        assert "secret detail" not in response.text


class TestScrapeEndToEnd:
    """Test the route with the real orchestrator over a mocked browser."""

    def test_both_attempts_failing_returns_500(self, mock_session, mock_page, mock_context):
        mock_page.goto = AsyncMock(side_effect=TimeoutError("navigation timed out"))
        scraper = PageScraper(session=mock_session)
        app.dependency_overrides[get_scraper] = lambda: scraper
        try:
            response = TestClient(app).post("/scrape", json={"url": "https://example.com"})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json() == {"error": FETCH_FAILED_MESSAGE}
        assert mock_page.goto.await_count == 2
        mock_context.close.assert_awaited_once()


class TestLifespan:
    """Test browser start and shutdown with the application."""

    def test_browser_started_and_shut_down_once(self, mock_session):
        manager = ShutdownManager()
        with (
            patch("page_fetcher.server.browser_session", mock_session),
            patch("page_fetcher.server.get_shutdown_manager", return_value=manager),
        ):
            with TestClient(app) as client:
                assert client.get("/health").status_code == 200
                mock_session.ensure_started.assert_awaited_once()

        mock_session.shutdown.assert_awaited_once()
        assert manager.is_shutting_down is True

    def test_launch_failure_at_startup_keeps_service_up(self, mock_session):
        mock_session.ensure_started = AsyncMock(side_effect=LaunchError("no chromium"))
        manager = ShutdownManager()
        with (
            patch("page_fetcher.server.browser_session", mock_session),
            patch("page_fetcher.server.get_shutdown_manager", return_value=manager),
        ):
            with TestClient(app) as client:
                response = client.get("/health")

        assert response.status_code == 200
        mock_session.shutdown.assert_awaited_once()

    def test_reentering_lifespan_registers_teardown_once(self, mock_session):
        manager = ShutdownManager()
        with (
            patch("page_fetcher.server.browser_session", mock_session),
            patch("page_fetcher.server.get_shutdown_manager", return_value=manager),
        ):
            with TestClient(app):
                pass
            with TestClient(app):
                pass

        assert manager._cleanups == [mock_session.shutdown]
        mock_session.shutdown.assert_awaited_once()


class TestScrapeDuringShutdown:
    """Test that no new scrapes start once shutdown has begun."""

    def test_scrape_rejected_while_shutting_down(self, client, fake_scraper):
        manager = ShutdownManager()
        asyncio.run(manager.initiate_shutdown())

        with patch("page_fetcher.server.get_shutdown_manager", return_value=manager):
            response = client.post("/scrape", json={"url": "https://example.com"})

        assert response.status_code == 500
        assert response.json() == {"error": FETCH_FAILED_MESSAGE}
        fake_scraper.scrape.assert_not_awaited()

    def test_invalid_url_still_rejected_while_shutting_down(self, client):
        manager = ShutdownManager()
        asyncio.run(manager.initiate_shutdown())

        with patch("page_fetcher.server.get_shutdown_manager", return_value=manager):
            response = client.post("/scrape", json={"url": "nope"})

        assert response.status_code == 400
