"""The check cycle: every enabled site checked once, state saved once."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional

from ..config import (
    AppSettings,
    ConfigLoader,
    Credentials,
    SiteSpec,
    get_settings,
)
from ..notification import LineNotifier, NotificationError, Notifier
from ..scraper import BrowserFetcher, HttpFetcher
from ..scraper.types import CheckResult, ProductInfo, utc_now
from ..storage import (
    InMemoryStateStore,
    JsonStateStore,
    SiteStatus,
    StateStore,
    StorageError,
)
from ..utils.logging import LoggingContextManager, get_structured_logger
from .checker import SiteChecker
from .decision import DecisionEngine, NotificationDecision
from .evaluator import ConditionEvaluator

logger = get_structured_logger(__name__)


@dataclass
class SiteOutcome:
    """What happened to one site during a run."""

    site_name: str
    status: SiteStatus
    condition_met: bool
    notified: bool
    items: list[str] = field(default_factory=list)
    products: list[ProductInfo] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "site": self.site_name,
            "status": self.status.value,
            "conditionMet": self.condition_met,
            "notified": self.notified,
            "items": list(self.items),
        }
        if self.products:
            data["products"] = [
                {"name": p.name, "url": p.url} for p in self.products
            ]
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class RunSummary:
    started_at: datetime
    finished_at: Optional[datetime] = None
    outcomes: list[SiteOutcome] = field(default_factory=list)

    @property
    def notified_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.notified)

    @property
    def error_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "startedAt": self.started_at.isoformat(),
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
            "results": [outcome.to_dict() for outcome in self.outcomes],
        }


def resolve_credentials(sites: list[SiteSpec]) -> dict[str, Credentials]:
    """Resolve login secrets for every site; a missing secret is fatal."""
    return {
        site.name: site.login.resolve_credentials()
        for site in sites
        if site.login is not None
    }


async def run_check(
    sites: list[SiteSpec],
    store: StateStore,
    checker: SiteChecker,
    notifier: Optional[Notifier],
    engine: Optional[DecisionEngine] = None,
    notify_on_error: bool = False,
) -> RunSummary:
    """Check ``sites`` in order against a loaded ``store``.

    Per-site failures are recorded and the run moves on. Only
    configuration errors (raised before any site is checked) and
    persistence errors escape.
    """
    engine = engine or DecisionEngine(store)
    summary = RunSummary(started_at=utc_now())

    credentials = resolve_credentials(sites)

    if notifier is None:
        logger.warning("Notifier not configured, notifications will be skipped")

    logger.info("Starting check run", sites=len(sites))

    for site in sites:
        with LoggingContextManager(site=site.name):
            try:
                outcome = await _process_site(
                    site,
                    store,
                    checker,
                    notifier,
                    engine,
                    credentials.get(site.name),
                    notify_on_error,
                )
            except StorageError:
                raise
            except Exception as e:
                logger.exception("Unexpected error processing site", error=str(e))
                result = CheckResult.failed(site.name, str(e) or type(e).__name__)
                state = store.record_check(result, notified=False)
                outcome = _outcome(result, state.status, notified=False)
        summary.outcomes.append(outcome)

    store.persist()

    summary.finished_at = utc_now()
    logger.info(
        "Check run complete",
        sites=len(summary.outcomes),
        notified=summary.notified_count,
        errors=summary.error_count,
    )
    return summary


async def _process_site(
    site: SiteSpec,
    store: StateStore,
    checker: SiteChecker,
    notifier: Optional[Notifier],
    engine: DecisionEngine,
    credentials: Optional[Credentials],
    notify_on_error: bool,
) -> SiteOutcome:
    logger.info("Checking site", url=site.url)
    result = await checker.check(site, credentials)

    if result.error:
        logger.error("Site check failed", error=result.error)
        prior = store.get(site.name)
        if notify_on_error and (prior is None or prior.status != SiteStatus.ERROR):
            await _send_error(notifier, site, result.error)
        state = store.record_check(result, notified=False)
        return _outcome(result, state.status, notified=False)

    logger.info(
        "Condition evaluated",
        condition_met=result.condition_met,
        items=result.items or None,
    )

    decision = engine.decide(site, result)
    if decision.product_mode:
        logger.info("New products", products=decision.items or "none")
    logger.info("Notification decision", should_notify=decision.notify)

    notified = False
    if decision.notify:
        notified = await _send(notifier, site, decision)

    state = store.record_check(result, notified)
    if notified and decision.product_mode:
        store.record_notified_products(site.name, decision.items)

    return _outcome(
        result,
        state.status,
        notified=notified,
        items=decision.items if decision.product_mode else result.items,
        products=decision.products,
    )


async def _send(
    notifier: Optional[Notifier], site: SiteSpec, decision: NotificationDecision
) -> bool:
    """Deliver a notification; False when it was skipped or failed."""
    if notifier is None:
        logger.warning("Skipping notification, no notifier configured")
        return False

    try:
        if decision.product_mode:
            await notifier.notify_products(site.name, decision.products)
        else:
            await notifier.notify(site.name, site.url, decision.items)
    except NotificationError as e:
        logger.error("Failed to send notification", error=str(e))
        return False
    except Exception as e:
        logger.exception("Unexpected error sending notification", error=str(e))
        return False

    logger.info("Notification sent")
    return True


async def _send_error(
    notifier: Optional[Notifier], site: SiteSpec, message: str
) -> None:
    if notifier is None:
        return
    try:
        await notifier.notify_error(site.name, message)
    except NotificationError as e:
        logger.error("Failed to send error notification", error=str(e))
    except Exception as e:
        logger.exception("Unexpected error sending error notification", error=str(e))


def _outcome(
    result: CheckResult,
    status: SiteStatus,
    notified: bool,
    items: Optional[list[str]] = None,
    products: Optional[list[ProductInfo]] = None,
) -> SiteOutcome:
    return SiteOutcome(
        site_name=result.site_name,
        status=status,
        condition_met=result.condition_met,
        notified=notified,
        items=list(items if items is not None else result.items),
        products=list(products or []),
        error=result.error,
    )


class AvailabilityMonitor:
    """Wires configuration, fetchers, store and notifier for one run."""

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        config_file: Optional[Path] = None,
        status_file: Optional[Path] = None,
        dry_run: bool = False,
        store: Optional[StateStore] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.settings = settings or get_settings()
        self.config_file = Path(config_file or self.settings.config_file)
        self.status_file = Path(status_file or self.settings.status_file)
        self.dry_run = dry_run
        self._store = store
        self._notifier = notifier

    def build_store(self) -> StateStore:
        expiry = timedelta(hours=self.settings.product_expiry_hours)
        if self.dry_run:
            return InMemoryStateStore(product_expiry=expiry)
        return JsonStateStore(self.status_file, product_expiry=expiry)

    def build_notifier(self) -> Optional[Notifier]:
        if self.dry_run:
            return None
        try:
            return LineNotifier(self.settings.line)
        except NotificationError as e:
            logger.warning("LINE notifier not configured", error=str(e))
            return None

    async def run(self) -> RunSummary:
        logger.info("Aki watcher starting", config=str(self.config_file))

        sites = ConfigLoader(self.config_file).get_sites_config()
        store = self._store or self.build_store()
        store.load()

        notifier = self._notifier if self._notifier is not None else self.build_notifier()
        text_fetcher = HttpFetcher(self.settings.scraping)
        rendering_fetcher = BrowserFetcher(self.settings.scraping)
        checker = SiteChecker(
            text_fetcher,
            rendering_fetcher,
            ConditionEvaluator(timezone=self.settings.timezone),
        )

        try:
            return await run_check(
                sites,
                store,
                checker,
                notifier,
                notify_on_error=self.settings.notify_on_error,
            )
        finally:
            await text_fetcher.close()
            await rendering_fetcher.close()
            if notifier is not None and self._notifier is None:
                await notifier.close()
