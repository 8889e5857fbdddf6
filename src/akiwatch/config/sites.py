"""Site configuration models loaded from ``sites.yml``."""

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .conditions import NotifyCondition, parse_condition
from .types import ConfigError


class LoginSpec(BaseModel):
    """Form login performed in the browser before the target page is read."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    url: str
    username_selector: str
    password_selector: str
    submit_selector: str
    username_env: str
    password_env: str

    def resolve_credentials(self) -> "Credentials":
        """Read the username and password from the configured variables."""
        username = os.environ.get(self.username_env)
        password = os.environ.get(self.password_env)
        missing = [
            name
            for name, value in (
                (self.username_env, username),
                (self.password_env, password),
            )
            if not value
        ]
        if missing:
            raise ConfigError(
                f"Login credentials not set in environment: {', '.join(missing)}"
            )
        return Credentials(username=username, password=password)


class Credentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


class SiteSpec(BaseModel):
    """One watched page."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    login: Optional[LoginSpec] = None
    notify_when: Optional[NotifyCondition] = None
    min_days_ahead: Optional[int] = Field(default=None, ge=0)
    render: bool = False
    headers: dict[str, str] = Field(default_factory=dict)
    enabled: bool = True

    @field_validator("notify_when", mode="before")
    @classmethod
    def convert_condition(cls, v):
        return parse_condition(v)

    @model_validator(mode="after")
    def check_fetcher_capability(self):
        if self.render:
            return self
        if self.notify_when is not None and self.notify_when.structural:
            raise ValueError(
                f"Site '{self.name}': {self.notify_when.kind} needs a rendered "
                "page, set 'render: true'"
            )
        if self.login is not None:
            raise ValueError(
                f"Site '{self.name}': login needs a browser, set 'render: true'"
            )
        return self

    @property
    def product_mode(self) -> bool:
        return self.notify_when is not None and self.notify_when.kind == "product_scan"


class SitesConfig(BaseModel):
    """The whole ``sites.yml`` document."""

    sites: list[SiteSpec]

    @field_validator("sites")
    @classmethod
    def validate_unique_names(cls, v):
        seen = set()
        for site in v:
            if site.name in seen:
                raise ValueError(f"Duplicate site name: {site.name}")
            seen.add(site.name)
        return v

    @property
    def enabled_sites(self) -> list[SiteSpec]:
        return [site for site in self.sites if site.enabled]
