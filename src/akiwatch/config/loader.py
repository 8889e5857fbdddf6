"""Loading and validation of the watched-site configuration file."""

from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from ..utils.logging import get_structured_logger
from .sites import SitesConfig, SiteSpec
from .types import ConfigError, ConfigLoadError, ConfigValidationError

logger = get_structured_logger(__name__)


class ConfigLoader:
    """Reads ``sites.yml`` and turns it into validated site specs."""

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = Path(config_file or "config/sites.yml")

    def load_yaml_config(self) -> dict[str, Any]:
        """Load the raw YAML document."""
        if not self.config_file.exists():
            raise ConfigLoadError(f"Config file {self.config_file} not found")

        try:
            with open(self.config_file, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"Failed to parse YAML config: {str(e)}") from e
        except OSError as e:
            raise ConfigLoadError(f"Failed to load config file: {str(e)}") from e

        if not isinstance(config, dict):
            raise ConfigLoadError("Invalid config: top level must be a mapping")

        logger.debug("Loaded configuration", path=str(self.config_file))
        return config

    def load(self) -> SitesConfig:
        """Load and validate the configuration; any problem is fatal."""
        config = self.load_yaml_config()

        sites = config.get("sites")
        if not isinstance(sites, list):
            raise ConfigValidationError("Invalid config: sites array is required")

        try:
            parsed = SitesConfig.model_validate({"sites": sites})
        except ValidationError as e:
            raise ConfigValidationError(_format_validation_error(e, sites)) from e

        for site in parsed.sites:
            if site.notify_when is None:
                logger.warning("No valid condition specified", site=site.name)

        logger.info(
            "Loaded site configuration",
            path=str(self.config_file),
            sites=len(parsed.sites),
            enabled=len(parsed.enabled_sites),
        )
        return parsed

    def get_sites_config(self) -> list[SiteSpec]:
        """Get the enabled sites in configured order."""
        return self.load().enabled_sites

    def save_yaml_config(self, config: dict[str, Any]) -> None:
        """Save configuration to YAML file."""
        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)

            with open(self.config_file, "w", encoding="utf-8") as f:
                yaml.safe_dump(
                    config,
                    f,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                    indent=2,
                )

            logger.info("Saved configuration", path=str(self.config_file))

        except OSError as e:
            raise ConfigError(f"Failed to save config file: {str(e)}") from e

    def validate_config(self) -> list[str]:
        """Validate configuration and return list of issues."""
        issues = []

        try:
            config = self.load_yaml_config()
        except ConfigError as e:
            return [str(e)]

        sites = config.get("sites")
        if not isinstance(sites, list):
            return ["Missing or invalid 'sites' list"]

        names: set[str] = set()
        for i, site in enumerate(sites):
            if not isinstance(site, dict):
                issues.append(f"Site {i} is not a valid object")
                continue

            label = site.get("name") or f"#{i}"
            try:
                spec = SiteSpec.model_validate(site)
            except ValidationError as e:
                for error in e.errors():
                    issues.append(f"Site {label}: {_describe_error(error)}")
                continue

            if spec.name in names:
                issues.append(f"Site {label}: duplicate name")
            names.add(spec.name)

            if spec.notify_when is None:
                issues.append(f"Site {label}: no notifyWhen condition configured")

        return issues


def _describe_error(error: dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


def _format_validation_error(error: ValidationError, sites: list[Any]) -> str:
    lines = ["Invalid site configuration:"]
    for item in error.errors():
        loc = list(item.get("loc", ()))
        # loc looks like ("sites", <index>, <field>, ...)
        if len(loc) >= 2 and loc[0] == "sites" and isinstance(loc[1], int):
            index = loc[1]
            raw = sites[index] if index < len(sites) else {}
            label = raw.get("name") if isinstance(raw, dict) else None
            item = {**item, "loc": tuple(loc[2:])}
            lines.append(f"  site {label or index}: {_describe_error(item)}")
        else:
            lines.append(f"  {_describe_error(item)}")
    return "\n".join(lines)


def create_example_config(config_path: Path) -> None:
    """Create an example configuration file."""
    example_config = {
        "sites": [
            {
                "name": "若洲ゴルフリンクス（補充予約）",
                "url": "https://www.jgo-os.com/wrlo/opening.php",
                "notifyWhen": {"textNotContains": "空き枠はございません"},
                "minDaysAhead": 3,
            },
            {
                "name": "Example shop new arrivals",
                "url": "https://shop.example.com/new",
                "notifyWhen": {
                    "productScan": {
                        "productNameRegex": '<h3 class="item-name">([^<]+)</h3>',
                        "productUrlRegex": 'href="([^"]+)"',
                        "baseUrl": "https://shop.example.com",
                        "excludeProducts": [],
                    }
                },
            },
            {
                "name": "Members reservation page",
                "url": "https://members.example.com/reserve",
                "render": True,
                "login": {
                    "url": "https://members.example.com/login",
                    "usernameSelector": "#username",
                    "passwordSelector": "#password",
                    "submitSelector": "button[type=submit]",
                    "usernameEnv": "MEMBERS_USERNAME",
                    "passwordEnv": "MEMBERS_PASSWORD",
                },
                "notifyWhen": {
                    "elementCountGreaterThan": {"selector": ".slot.open", "count": 0}
                },
                "enabled": False,
            },
        ]
    }

    loader = ConfigLoader(config_path)
    loader.save_yaml_config(example_config)
