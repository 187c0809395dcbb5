"""Tests for the Playwright adapter, with the browser driver mocked out."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from snapshot_service.renderer.base import RenderError, Viewport
from snapshot_service.renderer.playwright_renderer import (
    PLAYWRIGHT_WAIT_UNTIL,
    PlaywrightRenderer,
    PlaywrightSession,
)
from snapshot_service.tasks.models import WaitPolicy


@pytest.fixture
def driver():
    """Mocked playwright driver, chromium browser and page."""
    page = MagicMock()
    page.goto = AsyncMock()
    page.evaluate = AsyncMock(return_value=None)
    page.set_viewport_size = AsyncMock()
    page.screenshot = AsyncMock(return_value=b"png-bytes")

    browser = MagicMock()
    browser.new_page = AsyncMock(return_value=page)
    browser.close = AsyncMock()

    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)
    playwright.stop = AsyncMock()

    manager = MagicMock()
    manager.start = AsyncMock(return_value=playwright)

    with patch(
        "snapshot_service.renderer.playwright_renderer.async_playwright",
        return_value=manager,
    ):
        yield playwright, browser, page


class TestPlaywrightRenderer:
    @pytest.mark.asyncio
    async def test_launch_passes_flags_and_viewport(self, driver):
        playwright, browser, page = driver
        renderer = PlaywrightRenderer(headless=True, browser_args=["--no-sandbox"])

        session = await renderer.launch(Viewport(800, 600))

        playwright.chromium.launch.assert_awaited_once_with(
            headless=True, args=["--no-sandbox"]
        )
        browser.new_page.assert_awaited_once_with(viewport={"width": 800, "height": 600})
        assert isinstance(session, PlaywrightSession)
        assert session.page is page

    @pytest.mark.asyncio
    async def test_launch_failure_stops_driver(self, driver):
        playwright, _, _ = driver
        playwright.chromium.launch.side_effect = RuntimeError("Executable doesn't exist")

        with pytest.raises(RuntimeError, match="Executable doesn't exist"):
            await PlaywrightRenderer().launch(Viewport(800, 600))

        playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_page_failure_closes_browser(self, driver):
        playwright, browser, _ = driver
        browser.new_page.side_effect = RuntimeError("Target closed")

        with pytest.raises(RuntimeError, match="Target closed"):
            await PlaywrightRenderer().launch(Viewport(800, 600))

        browser.close.assert_awaited_once()
        playwright.stop.assert_awaited_once()


class TestPlaywrightSession:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("policy", list(WaitPolicy))
    async def test_navigate_maps_wait_policy(self, driver, policy):
        _, _, page = driver
        session = await PlaywrightRenderer().launch(Viewport(800, 600))

        await session.navigate("https://example.com", policy, 30_000)

        page.goto.assert_awaited_once_with(
            "https://example.com", wait_until=PLAYWRIGHT_WAIT_UNTIL[policy], timeout=30_000
        )

    def test_network_idle_maps_to_playwright_name(self):
        assert PLAYWRIGHT_WAIT_UNTIL[WaitPolicy.NETWORK_IDLE] == "networkidle"

    @pytest.mark.asyncio
    async def test_measure_element(self, driver):
        _, _, page = driver
        session = await PlaywrightRenderer().launch(Viewport(800, 600))

        page.evaluate.return_value = 812.5
        assert await session.measure_element(".content") == 812.5

        page.evaluate.return_value = None
        assert await session.measure_element(".content") is None

        assert page.evaluate.await_args.args[1] == ".content"

    @pytest.mark.asyncio
    async def test_resize_and_capture(self, driver):
        _, _, page = driver
        session = await PlaywrightRenderer().launch(Viewport(800, 600))

        await session.resize_viewport(800, 1034)
        image = await session.capture("png", full_page=True)

        page.set_viewport_size.assert_awaited_once_with({"width": 800, "height": 1034})
        page.screenshot.assert_awaited_once_with(type="png", full_page=True)
        assert image == b"png-bytes"

    @pytest.mark.asyncio
    async def test_capture_rejects_unknown_format(self, driver):
        session = await PlaywrightRenderer().launch(Viewport(800, 600))

        with pytest.raises(RenderError, match="Unsupported image format"):
            await session.capture("gif", full_page=True)

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, driver):
        playwright, browser, _ = driver
        session = await PlaywrightRenderer().launch(Viewport(800, 600))

        await session.close()
        await session.close()

        browser.close.assert_awaited_once()
        playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_stops_driver_when_browser_close_fails(self, driver):
        playwright, browser, _ = driver
        browser.close.side_effect = RuntimeError("browser crashed")
        session = await PlaywrightRenderer().launch(Viewport(800, 600))

        with pytest.raises(RuntimeError, match="browser crashed"):
            await session.close()

        playwright.stop.assert_awaited_once()
