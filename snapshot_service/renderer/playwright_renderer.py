"""Headless Chromium renderer built on Playwright's async API."""

from playwright.async_api import Browser, Page, Playwright, async_playwright
import structlog

from snapshot_service.renderer.base import RenderError, Renderer, RenderSession, Viewport
from snapshot_service.tasks.models import WaitPolicy

logger = structlog.get_logger(__name__)

PLAYWRIGHT_WAIT_UNTIL = {
    WaitPolicy.LOAD: "load",
    WaitPolicy.DOM_CONTENT_LOADED: "domcontentloaded",
    WaitPolicy.NETWORK_IDLE: "networkidle",
    WaitPolicy.COMMIT: "commit",
}

_MEASURE_SCRIPT = """(selector) => {
    const element = document.querySelector(selector);
    return element ? element.getBoundingClientRect().height : null;
}"""


class PlaywrightSession(RenderSession):
    """A Chromium browser with a single page."""

    def __init__(self, playwright: Playwright, browser: Browser, page: Page):
        self._playwright = playwright
        self._browser = browser
        self.page = page
        self._closed = False

    async def navigate(self, url: str, wait_until: WaitPolicy, timeout_ms: int) -> None:
        await self.page.goto(
            url, wait_until=PLAYWRIGHT_WAIT_UNTIL[wait_until], timeout=timeout_ms
        )

    async def measure_element(self, selector: str) -> float | None:
        height = await self.page.evaluate(_MEASURE_SCRIPT, selector)
        return float(height) if height is not None else None

    async def resize_viewport(self, width: int, height: int) -> None:
        await self.page.set_viewport_size({"width": width, "height": height})

    async def capture(self, image_format: str, full_page: bool) -> bytes:
        if image_format not in ("png", "jpeg"):
            raise RenderError(f"Unsupported image format: {image_format}")
        return await self.page.screenshot(type=image_format, full_page=full_page)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._browser.close()
        finally:
            await self._playwright.stop()


class PlaywrightRenderer(Renderer):
    """Launches one Chromium process per session."""

    def __init__(self, headless: bool = True, browser_args: list[str] | None = None):
        self.headless = headless
        self.browser_args = list(browser_args or [])

    async def launch(self, viewport: Viewport) -> PlaywrightSession:
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(
                headless=self.headless, args=self.browser_args
            )
        except Exception:
            await playwright.stop()
            raise

        try:
            page = await browser.new_page(
                viewport={"width": viewport.width, "height": viewport.height}
            )
        except Exception:
            try:
                await browser.close()
            finally:
                await playwright.stop()
            raise

        logger.debug(
            "Chromium launched",
            headless=self.headless,
            width=viewport.width,
            height=viewport.height,
        )
        return PlaywrightSession(playwright, browser, page)
