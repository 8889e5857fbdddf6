"""Playwright page rendering with an optional form login."""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..config import Credentials, LoginSpec, ScrapingSettings, get_settings
from ..utils.logging import get_structured_logger
from .types import AuthenticationError, FetchError, PageContent

logger = get_structured_logger(__name__)


class BrowserFetcher:
    """Headless Chromium fetcher that renders pages before reading them."""

    def __init__(self, settings: Optional[ScrapingSettings] = None):
        self.settings = settings or get_settings().scraping
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self._browser_lock = asyncio.Lock()

    async def setup(self) -> None:
        """Start Playwright and launch the browser once."""
        if self.browser:
            return

        async with self._browser_lock:
            if self.browser:
                return

            logger.info("Initializing Playwright browser")

            self.playwright = await async_playwright().start()
            self.browser = await self.playwright.chromium.launch(
                headless=self.settings.headless,
                args=[
                    "--no-sandbox",
                    "--disable-dev-shm-usage",
                    "--disable-gpu",
                    "--disable-blink-features=AutomationControlled",
                ],
            )

            logger.info("Playwright browser initialized")

    async def close(self) -> None:
        """Clean up browser and Playwright instances."""
        async with self._browser_lock:
            if self.browser:
                await self.browser.close()
                self.browser = None

            if self.playwright:
                await self.playwright.stop()
                self.playwright = None
                logger.info("Playwright browser cleaned up")

    @asynccontextmanager
    async def create_page(self, headers: Optional[dict[str, str]] = None):
        """Open a page in a fresh context so cookies never leak between sites."""
        if not self.browser:
            await self.setup()

        extra_headers = {
            "Accept": self.settings.accept,
            "Accept-Language": self.settings.accept_language,
            **(headers or {}),
        }
        context: BrowserContext = await self.browser.new_context(
            user_agent=self.settings.user_agent,
            extra_http_headers=extra_headers,
            viewport={"width": 1280, "height": 1024},
        )
        timeout_ms = self.settings.timeout * 1000

        try:
            page = await context.new_page()
            page.set_default_timeout(timeout_ms)
            page.set_default_navigation_timeout(timeout_ms)
            yield page
        finally:
            await context.close()

    async def fetch(
        self, url: str, headers: Optional[dict[str, str]] = None
    ) -> PageContent:
        return await self.fetch_rendered(url, headers=headers)

    async def fetch_rendered(
        self,
        url: str,
        headers: Optional[dict[str, str]] = None,
        selectors: tuple[str, ...] = (),
        login: Optional[LoginSpec] = None,
        credentials: Optional[Credentials] = None,
    ) -> PageContent:
        """Render ``url`` and count the elements matching ``selectors``."""
        async with self.create_page(headers) as page:
            if login is not None:
                if credentials is None:
                    raise AuthenticationError(
                        f"Login configured for {url} but no credentials given"
                    )
                await self.authenticate(page, login, credentials)

            status_code = await self._navigate(page, url)

            text = await page.content()
            element_counts = {}
            for selector in selectors:
                element_counts[selector] = await page.locator(selector).count()

            logger.debug(
                "Rendered page",
                url=url,
                status_code=status_code,
                length=len(text),
                element_counts=element_counts,
            )
            return PageContent(
                url=page.url,
                text=text,
                status_code=status_code,
                element_counts=element_counts,
            )

    async def authenticate(
        self, page: Page, login: LoginSpec, credentials: Credentials
    ) -> None:
        """Navigate to the login form, fill it in and wait for the result."""
        logger.info("Logging in", login_url=login.url)
        try:
            await page.goto(login.url, wait_until="domcontentloaded")
            await page.fill(login.username_selector, credentials.username)
            await page.fill(login.password_selector, credentials.password)
            await page.click(login.submit_selector)
            await page.wait_for_load_state("networkidle")
        except PlaywrightTimeoutError as e:
            raise AuthenticationError(f"Login timed out: {str(e)}") from e
        except PlaywrightError as e:
            raise AuthenticationError(f"Login failed: {str(e)}") from e

    async def _navigate(self, page: Page, url: str) -> int:
        try:
            response = await page.goto(url, wait_until="networkidle")
        except PlaywrightTimeoutError as e:
            raise FetchError(f"Navigation timeout for {url}: {str(e)}") from e
        except PlaywrightError as e:
            raise FetchError(f"Navigation failed for {url}: {str(e)}") from e

        if response is None:
            return 200
        if not response.ok:
            raise FetchError(
                f"HTTP {response.status}: {response.status_text}",
                status_code=response.status,
            )
        return response.status
