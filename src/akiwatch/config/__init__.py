"""Configuration management for akiwatch."""

from .conditions import (
    ElementCountGreaterThan,
    ElementExists,
    ElementNotExists,
    MatchesPattern,
    NotifyCondition,
    ProductScan,
    TextContains,
    TextNotContains,
    parse_condition,
)
from .loader import ConfigLoader, create_example_config
from .settings import (
    ApiSettings,
    AppSettings,
    LineSettings,
    ScrapingSettings,
    get_settings,
    reload_settings,
)
from .sites import Credentials, LoginSpec, SitesConfig, SiteSpec
from .types import ConfigError, ConfigLoadError, ConfigValidationError

__all__ = [
    # Settings
    "AppSettings",
    "ApiSettings",
    "LineSettings",
    "ScrapingSettings",
    "get_settings",
    "reload_settings",
    # Site configuration
    "ConfigLoader",
    "create_example_config",
    "SitesConfig",
    "SiteSpec",
    "LoginSpec",
    "Credentials",
    # Conditions
    "NotifyCondition",
    "TextContains",
    "TextNotContains",
    "MatchesPattern",
    "ElementExists",
    "ElementNotExists",
    "ElementCountGreaterThan",
    "ProductScan",
    "parse_condition",
    # Errors
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
]
