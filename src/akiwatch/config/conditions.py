"""Notification condition variants.

Every site carries at most one condition. The YAML form mirrors the
camelCase keys the watcher has always used::

    notifyWhen:
      textNotContains: 空き枠はございません

and is converted into exactly one of the models below by
:func:`parse_condition`.
"""

import re
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Condition(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def structural(self) -> bool:
        """True when the condition needs a rendered DOM to be evaluated."""
        return False


class TextContains(_Condition):
    kind: Literal["text_contains"] = "text_contains"
    needle: str = Field(min_length=1)


class TextNotContains(_Condition):
    kind: Literal["text_not_contains"] = "text_not_contains"
    needle: str = Field(min_length=1)


class MatchesPattern(_Condition):
    kind: Literal["matches_pattern"] = "matches_pattern"
    pattern: str = Field(min_length=1)

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v):
        return _compile_check(v)


class _ElementCondition(_Condition):
    selector: str = Field(min_length=1)

    @property
    def structural(self) -> bool:
        return True


class ElementExists(_ElementCondition):
    kind: Literal["element_exists"] = "element_exists"


class ElementNotExists(_ElementCondition):
    kind: Literal["element_not_exists"] = "element_not_exists"


class ElementCountGreaterThan(_ElementCondition):
    kind: Literal["element_count_greater_than"] = "element_count_greater_than"
    count: int = Field(ge=0)


class ProductScan(_Condition):
    """Treat the page as a list of products and report unseen ones."""

    kind: Literal["product_scan"] = "product_scan"
    name_pattern: str = Field(min_length=1)
    url_pattern: Optional[str] = None
    base_url: Optional[str] = None
    exclude: tuple[str, ...] = ()

    @field_validator("name_pattern", "url_pattern")
    @classmethod
    def validate_patterns(cls, v):
        if v is None:
            return v
        return _compile_check(v)


NotifyCondition = Annotated[
    Union[
        TextContains,
        TextNotContains,
        MatchesPattern,
        ElementExists,
        ElementNotExists,
        ElementCountGreaterThan,
        ProductScan,
    ],
    Field(discriminator="kind"),
]


def _compile_check(pattern: str) -> str:
    try:
        re.compile(pattern)
    except re.error as e:
        raise ValueError(f"Invalid regular expression {pattern!r}: {e}") from e
    return pattern


def _convert_text(key: str, value: Any) -> dict[str, Any]:
    kind = {
        "textContains": "text_contains",
        "textNotContains": "text_not_contains",
    }[key]
    return {"kind": kind, "needle": value}


def _convert_element(key: str, value: Any) -> dict[str, Any]:
    kind = {
        "elementExists": "element_exists",
        "elementNotExists": "element_not_exists",
    }[key]
    return {"kind": kind, "selector": value}


def _convert_count(key: str, value: Any) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(
            "elementCountGreaterThan must be a mapping with selector and count"
        )
    return {
        "kind": "element_count_greater_than",
        "selector": value.get("selector"),
        "count": value.get("count"),
    }


def _convert_product_scan(key: str, value: Any) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError("productScan must be a mapping")
    return {
        "kind": "product_scan",
        "name_pattern": value.get("productNameRegex"),
        "url_pattern": value.get("productUrlRegex"),
        "base_url": value.get("baseUrl"),
        "exclude": tuple(value.get("excludeProducts") or ()),
    }


_CONVERTERS = {
    "textContains": _convert_text,
    "textNotContains": _convert_text,
    "textMatchesRegex": lambda key, value: {"kind": "matches_pattern", "pattern": value},
    "elementExists": _convert_element,
    "elementNotExists": _convert_element,
    "elementCountGreaterThan": _convert_count,
    "productScan": _convert_product_scan,
}


def parse_condition(raw: Any) -> Optional[dict[str, Any]]:
    """Convert a ``notifyWhen`` mapping into a tagged condition mapping.

    Returns None when no condition key carries a value. Mappings that
    already carry a ``kind`` are passed through untouched. Raises ValueError
    when more than one condition is set or a key is unknown.
    """
    if raw is None:
        return None
    if isinstance(raw, BaseModel):
        return raw
    if not isinstance(raw, dict):
        raise ValueError("notifyWhen must be a mapping")
    if "kind" in raw:
        return raw

    unknown = set(raw) - set(_CONVERTERS)
    if unknown:
        raise ValueError(
            f"Unknown notifyWhen key(s): {', '.join(sorted(unknown))}"
        )

    present = [key for key, value in raw.items() if value not in (None, "")]
    if not present:
        return None
    if len(present) > 1:
        raise ValueError(
            f"notifyWhen must set exactly one condition, got: {', '.join(present)}"
        )

    key = present[0]
    return _CONVERTERS[key](key, raw[key])
