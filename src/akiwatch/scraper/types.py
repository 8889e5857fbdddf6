"""Type definitions for the scraper module."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional, Protocol

if TYPE_CHECKING:
    from ..config import Credentials, LoginSpec


class ScrapingError(Exception):
    """Base exception for scraping-related errors."""

    pass


class FetchError(ScrapingError):
    """Raised when a page cannot be retrieved."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(ScrapingError):
    """Raised when the login sequence fails."""

    pass


class EvaluationError(ScrapingError):
    """Raised when page content cannot be evaluated against a condition."""

    pass


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PageContent:
    """Raw text of a fetched page plus any rendered element counts."""

    url: str
    text: str
    status_code: int = 200
    element_counts: dict[str, int] = field(default_factory=dict)
    fetched_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class ProductInfo:
    """A product found by a product scan."""

    name: str
    url: Optional[str] = None


@dataclass
class CheckResult:
    """Outcome of checking one site once."""

    site_name: str
    condition_met: bool
    items: list[str] = field(default_factory=list)
    products: list[ProductInfo] = field(default_factory=list)
    error: Optional[str] = None
    checked_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if self.error is not None:
            self.condition_met = False
            self.items = []
            self.products = []

    @classmethod
    def failed(cls, site_name: str, error: str) -> "CheckResult":
        return cls(site_name=site_name, condition_met=False, error=error)


class TextFetcher(Protocol):
    """Retrieves the raw text of a page."""

    async def fetch(
        self, url: str, headers: Optional[dict[str, str]] = None
    ) -> PageContent:
        ...

    async def close(self) -> None:
        ...


class RenderingFetcher(TextFetcher, Protocol):
    """A fetcher that renders pages and can answer structural queries."""

    async def fetch_rendered(
        self,
        url: str,
        headers: Optional[dict[str, str]] = None,
        selectors: tuple[str, ...] = (),
        login: Optional["LoginSpec"] = None,
        credentials: Optional["Credentials"] = None,
    ) -> PageContent:
        ...
