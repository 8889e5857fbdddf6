"""Fakes and sample pages shared by the test suite."""

from datetime import datetime, timedelta
from typing import Optional

from akiwatch.config import SiteSpec
from akiwatch.notification import MessageResult, NotificationError
from akiwatch.scraper.types import PageContent

SLOT_PAGE = """
<html><body>
<ul class="slots">
  <li><a href="/reserve?d=1214">12月14日(日)
      セルフプレープラン（空き枠：1組）</a></li>
  <li><a href="/reserve?d=0105">1月5日(月) 2サムプラン（空き枠：2組）</a></li>
</ul>
</body></html>
"""

FULL_PAGE = "<html><body><p>空き枠はございません</p></body></html>"

PRODUCT_PAGE = """
<div class="item"><h3 class="name">Alpha Jacket</h3><a href="/items/alpha">view</a></div>
<div class="item"><h3 class="name">Beta Boots</h3><a href="https://cdn.example.com/beta">view</a></div>
<div class="item"><h3 class="name">Alpha Jacket</h3><a href="/items/alpha-2">view</a></div>
<div class="item"><h3 class="name">Gamma Gloves</h3></div>
"""


class FakeClock:
    """Controllable replacement for utc_now."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeFetcher:
    """Serves canned pages; an exception value is raised instead."""

    def __init__(self, pages: dict):
        self.pages = pages
        self.requests: list[str] = []
        self.closed = False

    async def fetch(self, url: str, headers: Optional[dict] = None) -> PageContent:
        self.requests.append(url)
        page = self.pages[url]
        if isinstance(page, Exception):
            raise page
        return PageContent(url=url, text=page)

    async def fetch_rendered(
        self, url, headers=None, selectors=(), login=None, credentials=None
    ) -> PageContent:
        self.requests.append(url)
        page = self.pages[url]
        if isinstance(page, Exception):
            raise page
        text, counts = page
        return PageContent(
            url=url,
            text=text,
            element_counts={selector: counts.get(selector, 0) for selector in selectors},
        )

    async def close(self) -> None:
        self.closed = True


class FakeNotifier:
    """Records every notification; can be told to fail."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple] = []

    async def _deliver(self, record: tuple) -> MessageResult:
        if self.fail:
            raise NotificationError("LINE API error: 500 - boom", status_code=500)
        self.sent.append(record)
        return MessageResult(success=True, status_code=200)

    async def notify(self, site_name, url, items=None) -> MessageResult:
        return await self._deliver(("notify", site_name, url, list(items or [])))

    async def notify_products(self, site_name, products) -> MessageResult:
        return await self._deliver(("products", site_name, list(products)))

    async def notify_error(self, site_name, message) -> MessageResult:
        return await self._deliver(("error", site_name, message))

    async def close(self) -> None:
        pass


def make_site(name: str = "golf", **overrides) -> SiteSpec:
    data = {
        "name": name,
        "url": f"https://example.com/{name}",
        "notifyWhen": {"textNotContains": "空き枠はございません"},
    }
    data.update(overrides)
    return SiteSpec.model_validate(data)


def product_site(name: str = "shop", exclude=()) -> SiteSpec:
    return make_site(
        name,
        notifyWhen={
            "productScan": {
                "productNameRegex": r'<h3 class="name">([^<]+)</h3>',
                "productUrlRegex": r'href="([^"]+)"',
                "baseUrl": "https://shop.example.com",
                "excludeProducts": list(exclude),
            }
        },
    )

