"""Tests for slot and product extraction."""

from datetime import date, datetime

import pytest
import pytz

from akiwatch.config import ProductScan
from akiwatch.scraper import (
    ContentExtractor,
    ProductInfo,
    days_until,
    infer_slot_date,
    normalize_whitespace,
)
from tests.fakes import PRODUCT_PAGE, SLOT_PAGE


@pytest.fixture
def extractor():
    return ContentExtractor()


class TestSlotExtraction:
    """Slot descriptions are read from link text."""

    def test_whitespace_is_normalized(self, extractor):
        html = "<a>12月14日(日)\n  空き枠：1組</a>"

        assert extractor.extract_slots(html) == ["12月14日(日) 空き枠：1組"]

    def test_document_order_is_kept(self, extractor):
        slots = extractor.extract_slots(SLOT_PAGE)

        assert slots == [
            "12月14日(日) セルフプレープラン（空き枠：1組）",
            "1月5日(月) 2サムプラン（空き枠：2組）",
        ]

    def test_repeated_slots_are_not_deduplicated(self, extractor):
        html = "<a>3月1日 空き枠：1</a><p>x</p><a>3月1日 空き枠：1</a>"

        assert extractor.extract_slots(html) == ["3月1日 空き枠：1", "3月1日 空き枠：1"]

    def test_links_without_marker_are_ignored(self, extractor):
        html = '<a href="/x">12月14日(日) 満席</a><span>12月15日 空き枠：1</span>'

        assert extractor.extract_slots(html) == []

    def test_link_attributes_are_allowed(self, extractor):
        html = '<a class="slot" href="/r?id=3">2月3日 空き枠あり</a>'

        assert extractor.extract_slots(html) == ["2月3日 空き枠あり"]

    def test_normalize_whitespace(self):
        assert normalize_whitespace("  a\t\n b　c  ") == "a b c"


class TestLeadTimeFilter:
    """Dates are inferred from month/day and compared against today."""

    def test_january_slot_kept_in_december_with_short_lead_time(self, extractor):
        now = datetime(2025, 12, 20)

        assert extractor.filter_by_lead_time(["1月5日"], 10, now) == ["1月5日"]

    def test_january_slot_dropped_in_december_with_long_lead_time(self, extractor):
        now = datetime(2025, 12, 20)

        assert extractor.filter_by_lead_time(["1月5日"], 30, now) == []

    def test_year_rolls_over_only_from_october(self):
        assert infer_slot_date(1, 5, datetime(2025, 12, 20)) == date(2026, 1, 5)
        assert infer_slot_date(3, 31, datetime(2025, 10, 1)) == date(2026, 3, 31)
        assert infer_slot_date(4, 1, datetime(2025, 10, 1)) == date(2025, 4, 1)
        assert infer_slot_date(1, 5, datetime(2025, 9, 30)) == date(2025, 1, 5)

    def test_days_until_rounds_up(self):
        now = datetime(2025, 12, 20, 9, 0)

        assert days_until(date(2026, 1, 5), now) == 16
        assert days_until(date(2025, 12, 20), datetime(2025, 12, 20)) == 0

    def test_boundary_is_inclusive(self, extractor):
        now = datetime(2025, 6, 1)

        assert extractor.filter_by_lead_time(["6月4日"], 3, now) == ["6月4日"]
        assert extractor.filter_by_lead_time(["6月3日"], 3, now) == []

    def test_items_without_dates_are_dropped(self, extractor):
        now = datetime(2025, 6, 1)
        items = ["空き枠：1組", "2月30日 空き枠", "7月1日 空き枠"]

        assert extractor.filter_by_lead_time(items, 0, now) == ["7月1日 空き枠"]

    def test_timezone_aware_now(self, extractor):
        now = pytz.timezone("Asia/Tokyo").localize(datetime(2025, 12, 20, 8, 0))

        assert extractor.filter_by_lead_time(["1月5日"], 16, now) == ["1月5日"]


class TestProductScan:
    """Products are named by a pattern and linked by a nearby URL."""

    def scan(self, extractor, **kwargs):
        condition = ProductScan(
            name_pattern=r'<h3 class="name">([^<]+)</h3>',
            url_pattern=r'href="([^"]+)"',
            **kwargs,
        )
        return extractor.scan_products(PRODUCT_PAGE, condition)

    def test_first_occurrence_wins(self, extractor):
        products = self.scan(extractor, base_url="https://shop.example.com")

        assert [p.name for p in products] == ["Alpha Jacket", "Beta Boots", "Gamma Gloves"]
        assert products[0].url == "https://shop.example.com/items/alpha"

    def test_absolute_urls_are_untouched(self, extractor):
        products = self.scan(extractor, base_url="https://shop.example.com")

        assert products[1] == ProductInfo("Beta Boots", "https://cdn.example.com/beta")

    def test_relative_urls_without_base_stay_relative(self, extractor):
        products = self.scan(extractor)

        assert products[0].url == "/items/alpha"

    def test_url_search_window_is_bounded(self):
        extractor = ContentExtractor(url_lookahead=10)
        html = '<h3 class="name">Far</h3>' + " " * 20 + '<a href="/far">x</a>'
        condition = ProductScan(
            name_pattern=r'<h3 class="name">([^<]+)</h3>',
            url_pattern=r'href="([^"]+)"',
        )

        assert extractor.scan_products(html, condition) == [ProductInfo("Far", None)]

    def test_excluded_products_are_removed(self, extractor):
        products = self.scan(extractor, exclude=("Beta Boots",))

        assert [p.name for p in products] == ["Alpha Jacket", "Gamma Gloves"]

    def test_pattern_without_group_uses_whole_match(self, extractor):
        condition = ProductScan(name_pattern=r"Item-\d+")

        products = extractor.scan_products("Item-1 Item-2 Item-1", condition)

        assert products == [ProductInfo("Item-1"), ProductInfo("Item-2")]
