"""LINE Messaging API push notifications."""

from typing import Optional

import httpx

from ..config import LineSettings, get_settings
from ..scraper.types import ProductInfo
from ..utils.async_utils import retry_async
from ..utils.logging import get_structured_logger
from .formatting import LineMessageFormatter
from .types import MessageResult, NotificationError

logger = get_structured_logger(__name__)


class LineNotifier:
    """Sends push messages to a single LINE user."""

    def __init__(
        self,
        settings: Optional[LineSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
        formatter: Optional[LineMessageFormatter] = None,
    ):
        self.settings = settings or get_settings().line

        if not self.settings.channel_access_token.get_secret_value():
            raise NotificationError(
                "LINE_CHANNEL_ACCESS_TOKEN environment variable is not set"
            )
        if not self.settings.user_id:
            raise NotificationError("LINE_USER_ID environment variable is not set")

        self.formatter = formatter or LineMessageFormatter()
        self._client = client
        self.delivery_stats = {"sent": 0, "failed": 0}

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.timeout)
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def notify(
        self, site_name: str, url: str, items: Optional[list[str]] = None
    ) -> MessageResult:
        text = self.formatter.format_availability(site_name, url, items)
        return await self.push_message(text, message_type="availability")

    async def notify_products(
        self, site_name: str, products: list[ProductInfo]
    ) -> MessageResult:
        text = self.formatter.format_products(site_name, products)
        return await self.push_message(text, message_type="products")

    async def notify_error(self, site_name: str, message: str) -> MessageResult:
        text = self.formatter.format_error(site_name, message)
        return await self.push_message(text, message_type="error")

    async def push_message(self, text: str, message_type: str = "text") -> MessageResult:
        """Push one text message; connection failures are retried, nothing else is."""
        payload = {
            "to": self.settings.user_id,
            "messages": [{"type": "text", "text": text}],
        }
        token = self.settings.channel_access_token.get_secret_value()
        headers = {"Authorization": f"Bearer {token}"}

        client = await self._get_client()

        async def send_attempt() -> httpx.Response:
            return await client.post(self.settings.api_url, json=payload, headers=headers)

        try:
            response = await retry_async(
                send_attempt,
                max_retries=self.settings.max_retries,
                delay=1.0,
                backoff_factor=2.0,
                # Only failures before the request is sent are safe to repeat
                exceptions=(httpx.ConnectError, httpx.ConnectTimeout),
            )
        except httpx.HTTPError as e:
            self.delivery_stats["failed"] += 1
            raise NotificationError(
                f"Failed to send LINE notification: {str(e) or type(e).__name__}"
            ) from e

        if not response.is_success:
            self.delivery_stats["failed"] += 1
            raise NotificationError(
                f"LINE API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        self.delivery_stats["sent"] += 1
        logger.info(
            "LINE notification sent",
            message_type=message_type,
            status_code=response.status_code,
        )
        return MessageResult(
            success=True,
            status_code=response.status_code,
            request_id=response.headers.get("x-line-request-id"),
        )
