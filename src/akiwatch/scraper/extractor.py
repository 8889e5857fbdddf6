"""Extraction of availability slots and products from raw page text.

Everything here is pure: it operates on strings and returns plain values.
"""

import math
import re
from datetime import date, datetime
from typing import Optional
from urllib.parse import urljoin

from ..config import ProductScan
from ..utils.logging import get_structured_logger
from .types import ProductInfo

logger = get_structured_logger(__name__)

# Link text such as 「12月14日(日) セルフプレープラン（空き枠：1組）」
SLOT_PATTERN = re.compile(r"<a[^>]*>([^<]*\d{1,2}月\d{1,2}日[^<]*空き枠[^<]*)</a>")
MONTH_DAY_PATTERN = re.compile(r"(\d{1,2})月(\d{1,2})日")
WHITESPACE_PATTERN = re.compile(r"\s+")

# Characters after a product name searched for that product's URL
PRODUCT_URL_LOOKAHEAD = 500


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs to a single space and trim."""
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def infer_slot_date(month: int, day: int, now: datetime) -> date:
    """Turn a month/day pair into a date in the current or next year.

    From October onwards, January to March refer to the coming year.
    Raises ValueError for impossible dates.
    """
    year = now.year
    if now.month >= 10 and month <= 3:
        year += 1
    return date(year, month, day)


def days_until(slot_date: date, now: datetime) -> int:
    """Whole days from ``now`` until the start of ``slot_date``, rounded up."""
    start = datetime(slot_date.year, slot_date.month, slot_date.day)
    delta = start - now.replace(tzinfo=None)
    return math.ceil(delta.total_seconds() / 86400)


class ContentExtractor:
    """Pulls slot descriptions and product listings out of page text."""

    def __init__(
        self,
        slot_pattern: re.Pattern = SLOT_PATTERN,
        url_lookahead: int = PRODUCT_URL_LOOKAHEAD,
    ):
        self.slot_pattern = slot_pattern
        self.url_lookahead = url_lookahead

    def extract_slots(self, html: str) -> list[str]:
        """Return slot descriptions in document order."""
        slots = []
        for match in self.slot_pattern.finditer(html):
            text = normalize_whitespace(match.group(1))
            if text:
                slots.append(text)
        return slots

    def parse_slot_date(self, item: str, now: datetime) -> Optional[date]:
        match = MONTH_DAY_PATTERN.search(item)
        if not match:
            return None
        try:
            return infer_slot_date(int(match.group(1)), int(match.group(2)), now)
        except ValueError:
            return None

    def filter_by_lead_time(
        self, items: list[str], min_days_ahead: int, now: datetime
    ) -> list[str]:
        """Keep items dated at least ``min_days_ahead`` days after ``now``.

        Items without a parseable date are dropped.
        """
        kept = []
        for item in items:
            slot_date = self.parse_slot_date(item, now)
            if slot_date is None:
                logger.debug("Dropping slot without a usable date", item=item)
                continue
            if days_until(slot_date, now) >= min_days_ahead:
                kept.append(item)
            else:
                logger.debug(
                    "Dropping slot inside lead time",
                    item=item,
                    min_days_ahead=min_days_ahead,
                )
        return kept

    def scan_products(self, html: str, condition: ProductScan) -> list[ProductInfo]:
        """Find products on the page, excluding the configured names.

        Only the first occurrence of each name is kept. The product URL is
        the first ``url_pattern`` match shortly after the name.
        """
        name_re = re.compile(condition.name_pattern)
        url_re = re.compile(condition.url_pattern) if condition.url_pattern else None

        products = []
        seen: set[str] = set()
        for match in name_re.finditer(html):
            raw_name = match.group(1) if name_re.groups else match.group(0)
            name = normalize_whitespace(raw_name or "")
            if not name or name in seen:
                continue
            seen.add(name)

            url = None
            if url_re is not None:
                window = html[match.end() : match.end() + self.url_lookahead]
                url_match = url_re.search(window)
                if url_match:
                    url = url_match.group(1) if url_re.groups else url_match.group(0)
                    url = self._resolve_url(url, condition.base_url)

            products.append(ProductInfo(name=name, url=url))

        excluded = set(condition.exclude)
        return [product for product in products if product.name not in excluded]

    def _resolve_url(self, url: str, base_url: Optional[str]) -> str:
        if base_url and url.startswith("/"):
            return urljoin(base_url, url)
        return url
