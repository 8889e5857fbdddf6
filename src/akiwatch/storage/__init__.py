"""Persistence of per-site watch state."""

from .state import (
    DEFAULT_PRODUCT_EXPIRY,
    BaseStateStore,
    InMemoryStateStore,
    JsonStateStore,
    StateStore,
)
from .types import SiteState, SiteStatus, StatusData, StorageError

__all__ = [
    "StorageError",
    "SiteStatus",
    "SiteState",
    "StatusData",
    "StateStore",
    "BaseStateStore",
    "InMemoryStateStore",
    "JsonStateStore",
    "DEFAULT_PRODUCT_EXPIRY",
]
