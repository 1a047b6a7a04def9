from __future__ import annotations

from typing import Any


class QueryValidationError(ValueError):
    """Options rejected before the underlying store is touched."""

    def __init__(self, message: str, *, field: str | None = None, value: Any = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value


class InvalidFieldReference(QueryValidationError):
    pass


class InvalidPageSize(QueryValidationError):
    pass


class InvalidPage(QueryValidationError):
    pass


class InvalidSortDirection(QueryValidationError):
    pass


class InvalidFilterValue(QueryValidationError):
    pass
