"""Persisted status document types."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class StorageError(Exception):
    """Base exception for storage-related errors."""

    pass


class SiteStatus(str, Enum):
    """Last observed status of a watched site."""

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


class _Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _assume_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Older status files carry timestamps without an offset
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SiteState(_Document):
    """Persisted record for one site."""

    name: str
    status: SiteStatus
    last_checked: datetime
    last_notified: Optional[datetime] = None
    error_message: Optional[str] = None
    notified_products: Optional[list[str]] = None

    @field_validator("last_checked", "last_notified")
    @classmethod
    def validate_timestamps(cls, v):
        return _assume_utc(v)


class StatusData(_Document):
    """The whole status file."""

    last_updated: datetime
    sites: list[SiteState] = Field(default_factory=list)

    @field_validator("last_updated")
    @classmethod
    def validate_last_updated(cls, v):
        return _assume_utc(v)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)
