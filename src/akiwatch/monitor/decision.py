"""Deciding whether a check result warrants a notification."""

from dataclasses import dataclass, field
from typing import Optional

from ..config import SiteSpec
from ..scraper.types import CheckResult, ProductInfo
from ..storage import SiteState, SiteStatus, StateStore


@dataclass
class NotificationDecision:
    notify: bool
    items: list[str] = field(default_factory=list)
    products: list[ProductInfo] = field(default_factory=list)
    product_mode: bool = False


class DecisionEngine:
    """Applies the notification rules on top of the stored site state.

    Standard sites notify on a rising edge only: the condition holds now
    and the stored status is not ``available``. Product scans notify
    whenever a product shows up that has not been notified inside the
    expiry window, whatever the stored status.
    """

    def __init__(self, store: StateStore):
        self.store = store

    @staticmethod
    def should_notify(prior: Optional[SiteState], result: CheckResult) -> bool:
        if result.error or not result.condition_met:
            return False
        if prior is None:
            return True
        return prior.status != SiteStatus.AVAILABLE

    def new_products(
        self, site_name: str, result: CheckResult
    ) -> tuple[list[str], list[ProductInfo]]:
        """Products in ``result`` not yet notified for ``site_name``."""
        names = self.store.filter_new_products(site_name, result.items)
        wanted = set(names)
        products = [product for product in result.products if product.name in wanted]
        return names, products

    def decide(self, site: SiteSpec, result: CheckResult) -> NotificationDecision:
        """Must run before the result is recorded in the store."""
        if result.error:
            return NotificationDecision(notify=False, product_mode=site.product_mode)

        if site.product_mode:
            if not result.condition_met:
                return NotificationDecision(notify=False, product_mode=True)
            names, products = self.new_products(site.name, result)
            return NotificationDecision(
                notify=bool(names), items=names, products=products, product_mode=True
            )

        prior = self.store.get(site.name)
        return NotificationDecision(
            notify=self.should_notify(prior, result), items=list(result.items)
        )
