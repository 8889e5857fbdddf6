"""Condition evaluation against fetched page content."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import pytz

from ..config import (
    ElementCountGreaterThan,
    ElementExists,
    ElementNotExists,
    MatchesPattern,
    NotifyCondition,
    ProductScan,
    TextContains,
    TextNotContains,
)
from ..scraper.extractor import ContentExtractor
from ..scraper.types import EvaluationError, ProductInfo
from ..utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


@dataclass
class Evaluation:
    """Whether the condition holds and what is available."""

    condition_met: bool
    items: list[str] = field(default_factory=list)
    products: list[ProductInfo] = field(default_factory=list)


class ConditionEvaluator:
    """Decides whether a page is in the interesting state.

    Text conditions are plain predicates on the whole content. When one
    holds, availability slots are extracted separately and, with a lead
    time configured, only slots far enough ahead are kept; if none are
    left the condition counts as unmet. A page without any slot links is
    judged by the predicate alone. Product scans report every listed
    product that is not excluded.
    """

    def __init__(
        self,
        extractor: Optional[ContentExtractor] = None,
        timezone: str = "Asia/Tokyo",
    ):
        self.extractor = extractor or ContentExtractor()
        self.tz = pytz.timezone(timezone)

    def evaluate(
        self,
        content: str,
        condition: Optional[NotifyCondition],
        min_days_ahead: Optional[int] = None,
        element_counts: Optional[dict[str, int]] = None,
        now: Optional[datetime] = None,
    ) -> Evaluation:
        if condition is None:
            logger.warning("No valid condition specified")
            return Evaluation(condition_met=False)

        if isinstance(condition, ProductScan):
            products = self.extractor.scan_products(content, condition)
            return Evaluation(
                condition_met=bool(products),
                items=[product.name for product in products],
                products=products,
            )

        if not self.check_condition(content, condition, element_counts):
            return Evaluation(condition_met=False)

        items = self.extractor.extract_slots(content)
        # 0 means no lead time, so undated slots are kept
        if min_days_ahead and items:
            now = now or datetime.now(self.tz)
            items = self.extractor.filter_by_lead_time(items, min_days_ahead, now)
            if not items:
                logger.info(
                    "Condition met but no slot passes the lead time",
                    min_days_ahead=min_days_ahead,
                )
                return Evaluation(condition_met=False)

        return Evaluation(condition_met=True, items=items)

    def check_condition(
        self,
        content: str,
        condition: NotifyCondition,
        element_counts: Optional[dict[str, int]] = None,
    ) -> bool:
        """Evaluate the predicate part of a non-product condition."""
        if isinstance(condition, TextContains):
            return condition.needle in content

        if isinstance(condition, TextNotContains):
            return condition.needle not in content

        if isinstance(condition, MatchesPattern):
            return re.search(condition.pattern, content) is not None

        if isinstance(
            condition, (ElementExists, ElementNotExists, ElementCountGreaterThan)
        ):
            count = self._element_count(condition.selector, element_counts)
            if isinstance(condition, ElementExists):
                return count > 0
            if isinstance(condition, ElementNotExists):
                return count == 0
            return count > condition.count

        raise EvaluationError(f"Unsupported condition: {condition!r}")

    def _element_count(
        self, selector: str, element_counts: Optional[dict[str, int]]
    ) -> int:
        if element_counts is None or selector not in element_counts:
            raise EvaluationError(
                f"No element count for selector {selector!r}; "
                "structural conditions need a rendered page"
            )
        return element_counts[selector]
