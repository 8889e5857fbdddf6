"""Tests for the notification decision rules."""

from akiwatch.monitor import DecisionEngine
from akiwatch.scraper import CheckResult, ProductInfo
from tests.fakes import make_site, product_site


def met(name="golf", items=None):
    return CheckResult(site_name=name, condition_met=True, items=list(items or []))


def unmet(name="golf"):
    return CheckResult(site_name=name, condition_met=False)


def scanned(names, site_name="shop"):
    return CheckResult(
        site_name=site_name,
        condition_met=bool(names),
        items=list(names),
        products=[ProductInfo(name) for name in names],
    )


class TestStandardMode:
    def test_first_check_notifies(self, store):
        decision = DecisionEngine(store).decide(make_site(), met(items=["1月5日"]))

        assert decision.notify
        assert decision.items == ["1月5日"]
        assert not decision.product_mode

    def test_unmet_never_notifies(self, store):
        assert not DecisionEngine(store).decide(make_site(), unmet()).notify

    def test_error_never_notifies(self, store):
        result = CheckResult.failed("golf", "timeout")

        assert not DecisionEngine(store).decide(make_site(), result).notify

    def test_no_duplicate_while_available(self, store):
        engine = DecisionEngine(store)
        store.record_check(met(), notified=True)

        assert not engine.decide(make_site(), met()).notify

    def test_rising_edge_fires_once(self, store):
        engine = DecisionEngine(store)
        site = make_site()
        decisions = []

        for result in (unmet(), met(), met(), unmet(), met()):
            decision = engine.decide(site, result)
            decisions.append(decision.notify)
            store.record_check(result, decision.notify)

        assert decisions == [False, True, False, False, True]

    def test_recovery_from_error_notifies(self, store):
        store.record_check(CheckResult.failed("golf", "timeout"), notified=False)

        assert DecisionEngine(store).decide(make_site(), met()).notify

    def test_notifies_without_items(self, store):
        decision = DecisionEngine(store).decide(make_site(), met())

        assert decision.notify
        assert decision.items == []


class TestProductMode:
    def test_all_products_new_on_first_scan(self, store):
        decision = DecisionEngine(store).decide(product_site(), scanned(["A", "B"]))

        assert decision.notify
        assert decision.product_mode
        assert decision.items == ["A", "B"]
        assert [p.name for p in decision.products] == ["A", "B"]

    def test_only_unseen_products(self, store, clock):
        engine = DecisionEngine(store)
        store.record_check(scanned(["A", "B"]), notified=True)
        store.record_notified_products("shop", ["A", "B"])
        clock.advance(hours=1)

        decision = engine.decide(product_site(), scanned(["A", "B", "C"]))

        assert decision.notify
        assert decision.items == ["C"]
        assert [p.name for p in decision.products] == ["C"]

    def test_status_available_does_not_suppress(self, store):
        store.record_check(scanned(["A"]), notified=False)

        decision = DecisionEngine(store).decide(product_site(), scanned(["A"]))

        assert decision.notify

    def test_nothing_new(self, store):
        store.record_check(scanned(["A"]), notified=True)
        store.record_notified_products("shop", ["A"])

        decision = DecisionEngine(store).decide(product_site(), scanned(["A"]))

        assert not decision.notify
        assert decision.items == []

    def test_renotifies_after_expiry(self, store, clock):
        store.record_check(scanned(["A"]), notified=True)
        store.record_notified_products("shop", ["A"])
        clock.advance(hours=25)

        decision = DecisionEngine(store).decide(product_site(), scanned(["A"]))

        assert decision.items == ["A"]

    def test_empty_scan(self, store):
        decision = DecisionEngine(store).decide(product_site(), scanned([]))

        assert not decision.notify
        assert decision.product_mode
