"""Plain HTTP page fetching with httpx."""

from typing import Optional

import httpx

from ..config import ScrapingSettings, get_settings
from ..utils.logging import get_structured_logger
from .types import FetchError, PageContent

logger = get_structured_logger(__name__)


class HttpFetcher:
    """Fetches page text over HTTP without rendering."""

    def __init__(
        self,
        settings: Optional[ScrapingSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings().scraping
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.timeout),
                follow_redirects=True,
                headers=self.settings.default_headers(),
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(
        self, url: str, headers: Optional[dict[str, str]] = None
    ) -> PageContent:
        client = await self._get_client()

        logger.debug("Fetching page", url=url)
        try:
            response = await client.get(url, headers=headers or None)
        except httpx.TimeoutException as e:
            raise FetchError(
                f"Request timeout after {self.settings.timeout}s: {url}"
            ) from e
        except httpx.RequestError as e:
            raise FetchError(f"Request failed: {str(e) or type(e).__name__}") from e

        if not response.is_success:
            raise FetchError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )

        logger.debug(
            "Fetched page",
            url=url,
            status_code=response.status_code,
            length=len(response.text),
        )
        return PageContent(
            url=str(response.url), text=response.text, status_code=response.status_code
        )
