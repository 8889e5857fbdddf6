"""Fetching and evaluating a single site."""

from datetime import datetime
from typing import Optional

from ..config import Credentials, SiteSpec
from ..scraper.types import (
    CheckResult,
    PageContent,
    RenderingFetcher,
    ScrapingError,
    TextFetcher,
)
from ..utils.logging import get_structured_logger
from .evaluator import ConditionEvaluator

logger = get_structured_logger(__name__)


class SiteChecker:
    """Runs fetch and evaluation for one site and never raises.

    Any failure becomes a :class:`CheckResult` with ``error`` set.
    """

    def __init__(
        self,
        text_fetcher: TextFetcher,
        rendering_fetcher: Optional[RenderingFetcher] = None,
        evaluator: Optional[ConditionEvaluator] = None,
    ):
        self.text_fetcher = text_fetcher
        self.rendering_fetcher = rendering_fetcher
        self.evaluator = evaluator or ConditionEvaluator()

    async def check(
        self,
        site: SiteSpec,
        credentials: Optional[Credentials] = None,
        now: Optional[datetime] = None,
    ) -> CheckResult:
        try:
            page = await self.fetch(site, credentials)
            evaluation = self.evaluator.evaluate(
                page.text,
                site.notify_when,
                min_days_ahead=site.min_days_ahead,
                element_counts=page.element_counts,
                now=now or datetime.now(self.evaluator.tz),
            )
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error("Error checking site", url=site.url, error=message)
            return CheckResult.failed(site.name, message)

        return CheckResult(
            site_name=site.name,
            condition_met=evaluation.condition_met,
            items=evaluation.items,
            products=evaluation.products,
        )

    async def fetch(
        self, site: SiteSpec, credentials: Optional[Credentials] = None
    ) -> PageContent:
        if not site.render:
            return await self.text_fetcher.fetch(site.url, headers=site.headers)

        if self.rendering_fetcher is None:
            raise ScrapingError(f"Site '{site.name}' needs a rendering fetcher")

        condition = site.notify_when
        selectors = (
            (condition.selector,)
            if condition is not None and condition.structural
            else ()
        )
        return await self.rendering_fetcher.fetch_rendered(
            site.url,
            headers=site.headers,
            selectors=selectors,
            login=site.login,
            credentials=credentials,
        )
