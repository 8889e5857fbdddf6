"""Site state store.

The store is loaded once when a run starts, updated in memory once per
checked site and written back once when the run ends. Runs are sequential,
so the in-memory document needs no locking.
"""

import os
import tempfile
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional, Protocol

from ..scraper.types import CheckResult, utc_now
from ..utils.logging import get_structured_logger
from .types import SiteState, SiteStatus, StatusData, StorageError

logger = get_structured_logger(__name__)

DEFAULT_PRODUCT_EXPIRY = timedelta(hours=24)


class StateStore(Protocol):
    """Interface the check cycle needs from a state store."""

    @property
    def data(self) -> StatusData:
        ...

    def load(self) -> StatusData:
        ...

    def get(self, site_name: str) -> Optional[SiteState]:
        ...

    def record_check(self, result: CheckResult, notified: bool) -> SiteState:
        ...

    def record_notified_products(self, site_name: str, names: list[str]) -> None:
        ...

    def filter_new_products(self, site_name: str, names: list[str]) -> list[str]:
        ...

    def persist(self) -> None:
        ...


class BaseStateStore:
    """In-memory state handling shared by all store backends."""

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        product_expiry: timedelta = DEFAULT_PRODUCT_EXPIRY,
    ):
        self._clock = clock
        self.product_expiry = product_expiry
        self._data: Optional[StatusData] = None
        self.persist_count = 0

    @property
    def data(self) -> StatusData:
        if self._data is None:
            raise StorageError("State store used before load()")
        return self._data

    def _empty(self) -> StatusData:
        return StatusData(last_updated=self._clock(), sites=[])

    def load(self) -> StatusData:
        self._data = self._read()
        return self._data

    def _read(self) -> StatusData:
        return self._empty()

    def _index(self, site_name: str) -> int:
        for i, state in enumerate(self.data.sites):
            if state.name == site_name:
                return i
        return -1

    def get(self, site_name: str) -> Optional[SiteState]:
        index = self._index(site_name)
        return self.data.sites[index] if index >= 0 else None

    def record_check(self, result: CheckResult, notified: bool) -> SiteState:
        """Record one check for a site.

        ``last_notified`` moves only when ``notified`` is true; otherwise the
        previous value is carried forward, as are the notified products.
        """
        now = self._clock()
        if result.error:
            status = SiteStatus.ERROR
        elif result.condition_met:
            status = SiteStatus.AVAILABLE
        else:
            status = SiteStatus.UNAVAILABLE

        index = self._index(result.site_name)
        existing = self.data.sites[index] if index >= 0 else None

        state = SiteState(
            name=result.site_name,
            status=status,
            last_checked=now,
            last_notified=now if notified else None,
            error_message=result.error or None,
        )
        if existing is not None:
            if not notified and existing.last_notified:
                state.last_notified = existing.last_notified
            if existing.notified_products is not None:
                state.notified_products = list(existing.notified_products)

        if index >= 0:
            self.data.sites[index] = state
        else:
            self.data.sites.append(state)

        self.data.last_updated = now
        return state

    def notified_products(self, site_name: str) -> list[str]:
        state = self.get(site_name)
        return list(state.notified_products or []) if state else []

    def record_notified_products(self, site_name: str, names: list[str]) -> None:
        """Add names to the site's notified set; unknown sites are ignored."""
        state = self.get(site_name)
        if state is None:
            return

        merged = list(state.notified_products or [])
        for name in names:
            if name not in merged:
                merged.append(name)
        state.notified_products = merged

    def filter_new_products(self, site_name: str, names: list[str]) -> list[str]:
        """Return the names not yet notified, after expiring old notifications."""
        self.clear_expired_products(site_name)
        notified = set(self.notified_products(site_name))
        return [name for name in names if name not in notified]

    def clear_expired_products(self, site_name: str) -> bool:
        """Forget every notified product once the expiry window has passed."""
        state = self.get(site_name)
        if state is None or not state.last_notified or not state.notified_products:
            return False

        elapsed = self._clock() - state.last_notified
        if elapsed < self.product_expiry:
            return False

        logger.info(
            "Clearing notified products",
            site=site_name,
            hours_since_notification=round(elapsed.total_seconds() / 3600, 1),
        )
        state.notified_products = []
        return True

    def persist(self) -> None:
        self._write(self.data)
        self.persist_count += 1

    def _write(self, data: StatusData) -> None:
        raise NotImplementedError


class InMemoryStateStore(BaseStateStore):
    """State store that keeps everything in memory."""

    def __init__(
        self,
        initial: Optional[StatusData] = None,
        clock: Callable[[], datetime] = utc_now,
        product_expiry: timedelta = DEFAULT_PRODUCT_EXPIRY,
    ):
        super().__init__(clock=clock, product_expiry=product_expiry)
        self._initial = initial
        self.saved: Optional[StatusData] = None

    def _read(self) -> StatusData:
        if self._initial is None:
            return self._empty()
        return self._initial.model_copy(deep=True)

    def _write(self, data: StatusData) -> None:
        self.saved = data.model_copy(deep=True)


class JsonStateStore(BaseStateStore):
    """State store backed by a JSON file rewritten as a whole on persist."""

    def __init__(
        self,
        path: Path,
        clock: Callable[[], datetime] = utc_now,
        product_expiry: timedelta = DEFAULT_PRODUCT_EXPIRY,
    ):
        super().__init__(clock=clock, product_expiry=product_expiry)
        self.path = Path(path)

    def _read(self) -> StatusData:
        if not self.path.exists():
            logger.info("No status file yet, starting fresh", path=str(self.path))
            return self._empty()

        try:
            content = self.path.read_text(encoding="utf-8")
            data = StatusData.model_validate_json(content)
        except (OSError, ValueError) as e:
            logger.warning(
                "Failed to load status file, starting fresh",
                path=str(self.path),
                error=str(e),
            )
            return self._empty()

        logger.debug("Loaded status file", path=str(self.path), sites=len(data.sites))
        return data

    def _write(self, data: StatusData) -> None:
        directory = self.path.parent
        tmp_name = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=directory,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                f.write(data.to_json())
                f.write("\n")
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            logger.error("Failed to save status file", path=str(self.path), error=str(e))
            raise StorageError(f"Failed to save status file {self.path}: {e}") from e

        logger.info("Status saved", path=str(self.path), sites=len(data.sites))
