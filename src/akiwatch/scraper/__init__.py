"""Page fetching and content extraction.

Two fetchers are provided: :class:`HttpFetcher` reads raw page text over
HTTP, :class:`BrowserFetcher` renders pages with Playwright, can log in
first and answers element-count queries.
"""

from .browser import BrowserFetcher
from .extractor import (
    ContentExtractor,
    days_until,
    infer_slot_date,
    normalize_whitespace,
)
from .fetcher import HttpFetcher
from .types import (
    AuthenticationError,
    CheckResult,
    EvaluationError,
    FetchError,
    PageContent,
    ProductInfo,
    RenderingFetcher,
    ScrapingError,
    TextFetcher,
    utc_now,
)

__all__ = [
    # Types
    "ScrapingError",
    "FetchError",
    "AuthenticationError",
    "EvaluationError",
    "PageContent",
    "ProductInfo",
    "CheckResult",
    "TextFetcher",
    "RenderingFetcher",
    "utc_now",
    # Fetchers
    "HttpFetcher",
    "BrowserFetcher",
    # Extraction
    "ContentExtractor",
    "normalize_whitespace",
    "infer_slot_date",
    "days_until",
]
