"""Tests for condition evaluation."""

from datetime import datetime

import pytest

from akiwatch.config import (
    ElementCountGreaterThan,
    ElementExists,
    ElementNotExists,
    MatchesPattern,
    ProductScan,
    TextContains,
    TextNotContains,
)
from akiwatch.monitor import ConditionEvaluator
from akiwatch.scraper import EvaluationError
from tests.fakes import FULL_PAGE, PRODUCT_PAGE, SLOT_PAGE


@pytest.fixture
def evaluator():
    return ConditionEvaluator()


class TestTextConditions:
    def test_text_contains(self, evaluator):
        assert evaluator.evaluate("abc 空き枠 def", TextContains(needle="空き枠")).condition_met
        assert not evaluator.evaluate("abc", TextContains(needle="空き枠")).condition_met

    def test_text_not_contains(self, evaluator):
        condition = TextNotContains(needle="空き枠はございません")

        assert not evaluator.evaluate(FULL_PAGE, condition).condition_met
        assert evaluator.evaluate(SLOT_PAGE, condition).condition_met

    def test_matches_pattern(self, evaluator):
        condition = MatchesPattern(pattern=r"残り\d+組")

        assert evaluator.evaluate("本日 残り3組", condition).condition_met
        assert not evaluator.evaluate("本日 満席", condition).condition_met

    def test_missing_condition_is_unmet(self, evaluator):
        evaluation = evaluator.evaluate(SLOT_PAGE, None)

        assert evaluation.condition_met is False
        assert evaluation.items == []


class TestSlotItems:
    def test_slots_extracted_when_met(self, evaluator):
        evaluation = evaluator.evaluate(SLOT_PAGE, TextContains(needle="空き枠"))

        assert evaluation.condition_met
        assert len(evaluation.items) == 2

    def test_no_slots_extracted_when_unmet(self, evaluator):
        evaluation = evaluator.evaluate(SLOT_PAGE, TextContains(needle="nothing"))

        assert evaluation.items == []

    def test_met_without_any_slot_link(self, evaluator):
        evaluation = evaluator.evaluate("<p>受付中</p>", TextContains(needle="受付中"))

        assert evaluation.condition_met
        assert evaluation.items == []

    def test_lead_time_ignored_without_slot_links(self, evaluator):
        """A page with no slot markup is judged by the predicate alone."""
        evaluation = evaluator.evaluate(
            "<p>受付中</p>",
            TextContains(needle="受付中"),
            min_days_ahead=3,
            now=datetime(2025, 12, 10),
        )

        assert evaluation.condition_met
        assert evaluation.items == []

    def test_zero_lead_time_keeps_undated_slots(self, evaluator):
        page = '<a href="/x">12月14日 空き枠あり</a><a href="/y">2月30日 空き枠あり</a>'

        evaluation = evaluator.evaluate(
            page,
            TextContains(needle="空き枠"),
            min_days_ahead=0,
            now=datetime(2025, 12, 20),
        )

        assert evaluation.condition_met
        assert evaluation.items == ["12月14日 空き枠あり", "2月30日 空き枠あり"]

    def test_lead_time_filters_slots(self, evaluator):
        evaluation = evaluator.evaluate(
            SLOT_PAGE,
            TextContains(needle="空き枠"),
            min_days_ahead=10,
            now=datetime(2025, 12, 10),
        )

        assert evaluation.condition_met
        assert evaluation.items == ["1月5日(月) 2サムプラン（空き枠：2組）"]

    def test_condition_unmet_when_lead_time_removes_every_slot(self, evaluator):
        evaluation = evaluator.evaluate(
            SLOT_PAGE,
            TextContains(needle="空き枠"),
            min_days_ahead=60,
            now=datetime(2025, 12, 10),
        )

        assert evaluation.condition_met is False
        assert evaluation.items == []


class TestStructuralConditions:
    def test_element_exists(self, evaluator):
        condition = ElementExists(selector=".open")

        assert evaluator.evaluate("", condition, element_counts={".open": 1}).condition_met
        assert not evaluator.evaluate("", condition, element_counts={".open": 0}).condition_met

    def test_element_not_exists(self, evaluator):
        condition = ElementNotExists(selector=".sold-out")

        assert evaluator.evaluate(
            "", condition, element_counts={".sold-out": 0}
        ).condition_met

    def test_count_threshold_is_strict(self, evaluator):
        condition = ElementCountGreaterThan(selector="li", count=2)

        assert not evaluator.evaluate("", condition, element_counts={"li": 2}).condition_met
        assert evaluator.evaluate("", condition, element_counts={"li": 3}).condition_met

    def test_missing_counts_raise(self, evaluator):
        with pytest.raises(EvaluationError):
            evaluator.evaluate("<li></li>", ElementExists(selector="li"))


class TestProductScanCondition:
    def test_met_when_products_remain(self, evaluator):
        condition = ProductScan(name_pattern=r'<h3 class="name">([^<]+)</h3>')

        evaluation = evaluator.evaluate(PRODUCT_PAGE, condition)

        assert evaluation.condition_met
        assert evaluation.items == ["Alpha Jacket", "Beta Boots", "Gamma Gloves"]
        assert [p.name for p in evaluation.products] == evaluation.items

    def test_unmet_when_everything_excluded(self, evaluator):
        condition = ProductScan(
            name_pattern=r'<h3 class="name">([^<]+)</h3>',
            exclude=("Alpha Jacket", "Beta Boots", "Gamma Gloves"),
        )

        evaluation = evaluator.evaluate(PRODUCT_PAGE, condition)

        assert evaluation.condition_met is False
        assert evaluation.products == []
