"""Type definitions for the notification module."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Protocol

from ..scraper.types import ProductInfo, utc_now


class NotificationError(Exception):
    """Raised when a notification could not be delivered."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class MessageResult:
    """Result of a delivered message."""

    success: bool
    status_code: Optional[int] = None
    request_id: Optional[str] = None
    sent_at: datetime = field(default_factory=utc_now)


class Notifier(Protocol):
    """Push channel used by the check cycle.

    Every method either returns a successful :class:`MessageResult` or
    raises :class:`NotificationError`.
    """

    async def notify(
        self, site_name: str, url: str, items: Optional[list[str]] = None
    ) -> MessageResult:
        ...

    async def notify_products(
        self, site_name: str, products: list[ProductInfo]
    ) -> MessageResult:
        ...

    async def notify_error(self, site_name: str, message: str) -> MessageResult:
        ...

    async def close(self) -> None:
        ...
