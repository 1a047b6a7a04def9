from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from paginate_helper.core.config import settings
from paginate_helper.core.errors import InvalidFieldReference, InvalidPage, InvalidPageSize, QueryValidationError

OPTION_KEYS = ("per_page", "page", "search", "search_fields", "filters", "order_by", "order_direction", "with")


def _ordered_unique(values) -> Tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        values = [values]
    if not isinstance(values, (list, tuple, set, frozenset)):
        return values
    seen: list[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return tuple(seen)


class QueryOptions(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    per_page: int = Field(default_factory=lambda: settings.DEFAULT_PER_PAGE)
    page: Optional[int] = None
    search: Optional[str] = None
    search_fields: Tuple[str, ...] = ()
    filters: dict[str, Any] = {}
    order_by: str = Field(default_factory=lambda: settings.DEFAULT_ORDER_BY)
    order_direction: str = Field(default_factory=lambda: settings.DEFAULT_ORDER_DIRECTION)
    with_: Tuple[str, ...] = Field(default=(), alias="with")

    @field_validator("search_fields", "with_", mode="before")
    @classmethod
    def _dedupe(cls, value):
        return _ordered_unique(value)

    @field_validator("search", mode="before")
    @classmethod
    def _search_to_text(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("order_direction", mode="before")
    @classmethod
    def _normalize_direction(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @classmethod
    def from_mapping(cls, options: "QueryOptions | Mapping[str, Any] | None") -> "QueryOptions":
        """Build options from an untyped bag; ``None`` values fall back to defaults."""
        if isinstance(options, QueryOptions):
            return options
        raw = {key: value for key, value in dict(options or {}).items() if key in OPTION_KEYS and value is not None}
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise _translate_validation_error(exc, raw) from exc


def _translate_validation_error(exc: ValidationError, raw: dict[str, Any]) -> QueryValidationError:
    first = exc.errors()[0]
    key = str(first["loc"][0]) if first.get("loc") else None
    message = f'Некорректное значение параметра "{key}": {first.get("msg")}'
    if key == "per_page":
        return InvalidPageSize(message, field=key, value=raw.get(key))
    if key == "page":
        return InvalidPage(message, field=key, value=raw.get(key))
    if key in {"search_fields", "order_by", "with"}:
        return InvalidFieldReference(message, field=key, value=raw.get(key))
    return QueryValidationError(message, field=key, value=raw.get(key))


@dataclass
class QueryResult:
    items: List[Any]
    total: int
    page: int
    per_page: int

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def has_more_pages(self) -> bool:
        return self.page < self.last_page

    @property
    def from_index(self) -> int | None:
        if not self.items:
            return None
        return (self.page - 1) * self.per_page + 1

    @property
    def to_index(self) -> int | None:
        if not self.items:
            return None
        return (self.page - 1) * self.per_page + len(self.items)

    def to_dict(self, serialize: Callable[[Any], Any] | None = None) -> dict[str, Any]:
        items = [serialize(item) for item in self.items] if serialize else list(self.items)
        return {
            "items": items,
            "total": self.total,
            "page": self.page,
            "per_page": self.per_page,
            "last_page": self.last_page,
            "from": self.from_index,
            "to": self.to_index,
        }
