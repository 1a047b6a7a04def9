from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol, Sequence

from sqlalchemy import String, asc, cast, desc, func, inspect, or_, select
from sqlalchemy.orm import Query, aliased, selectinload
from sqlalchemy.sql.util import ClauseAdapter

from paginate_helper.core.config import settings
from paginate_helper.services.fields import FieldRef
from paginate_helper.services.filter_values import (
    coerce_filter_value,
    column_python_type,
    is_date_only_literal,
)

_LOG = logging.getLogger("paginate_helper.queryable")

SEQUENCE_TYPES = (list, tuple, set, frozenset)


@dataclass
class FetchedPage:
    items: list[Any]
    total: int
    page: int


class Queryable(Protocol):
    """Composable, not yet executed query against a data store."""

    def has_relation(self, name: str) -> bool:
        ...

    def has_column(self, column: str, relation: str | None = None) -> bool:
        ...

    def check_filter_value(self, field: FieldRef, value: Any) -> None:
        """Raise ``InvalidFilterValue`` when ``value`` cannot be matched against ``field``."""
        ...

    def attach(self, relations: Sequence[str]) -> None:
        ...

    def where_any_contains(self, fields: Sequence[FieldRef], needle: str) -> None:
        ...

    def where_matches(self, field: FieldRef, value: Any) -> None:
        ...

    def order_by(self, field: FieldRef, direction: str) -> None:
        ...

    def fetch_page(self, per_page: int, page: int | None) -> FetchedPage:
        ...


class SqlAlchemyQueryable:
    """Queryable over a SQLAlchemy ORM ``Query`` of a single mapped entity.

    Related-column predicates are rendered as EXISTS subqueries
    (``relationship.any()`` / ``relationship.has()``) and relation sort keys
    as correlated aggregate subqueries, so the parent rows are never
    multiplied by a join.
    """

    def __init__(
        self,
        query: Query,
        *,
        model=None,
        default_page: int = 1,
        case_insensitive: bool | None = None,
    ):
        self.query = query
        self.model = model if model is not None else query.column_descriptions[0]["entity"]
        self.default_page = default_page
        self.case_insensitive = settings.SEARCH_CASE_INSENSITIVE if case_insensitive is None else case_insensitive
        self._mapper = inspect(self.model)

    # introspection

    def has_relation(self, name: str) -> bool:
        return name in self._mapper.relationships

    def has_column(self, column: str, relation: str | None = None) -> bool:
        mapper = self._mapper
        if relation is not None:
            if not self.has_relation(relation):
                return False
            mapper = self._mapper.relationships[relation].mapper
        return column in mapper.column_attrs

    def check_filter_value(self, field: FieldRef, value: Any) -> None:
        column = self._column(field)
        for item in value if isinstance(value, SEQUENCE_TYPES) else (value,):
            coerce_filter_value(column, item)

    def _relationship(self, name: str):
        return self._mapper.relationships[name]

    def _column(self, field: FieldRef):
        if not field.is_related:
            return getattr(self.model, field.column)
        target = self._relationship(field.relation).mapper.class_
        return getattr(target, field.column)

    def _exists(self, relation: str, criterion):
        attr = getattr(self.model, relation)
        if self._relationship(relation).uselist:
            return attr.any(criterion)
        return attr.has(criterion)

    # composition

    def attach(self, relations: Sequence[str]) -> None:
        self.query = self.query.options(*(selectinload(getattr(self.model, name)) for name in relations))

    def _contains(self, column, needle: str):
        expr = column
        if column_python_type(column) is not str:
            expr = cast(column, String)
        if self.case_insensitive:
            return expr.icontains(needle, autoescape=True)
        return expr.contains(needle, autoescape=True)

    def where_any_contains(self, fields: Sequence[FieldRef], needle: str) -> None:
        clauses = []
        for field in fields:
            predicate = self._contains(self._column(field), needle)
            if field.is_related:
                predicate = self._exists(field.relation, predicate)
            clauses.append(predicate)
        if clauses:
            self.query = self.query.filter(or_(*clauses))

    def _equals(self, column, value):
        coerced = coerce_filter_value(column, value)
        if column_python_type(column) is datetime and is_date_only_literal(value):
            return (column >= coerced) & (column < coerced + timedelta(days=1))
        return column == coerced

    def _match(self, column, value):
        if not isinstance(value, SEQUENCE_TYPES):
            return self._equals(column, value)
        if column_python_type(column) is datetime and any(is_date_only_literal(item) for item in value):
            return or_(*(self._equals(column, item) for item in value))
        return column.in_([coerce_filter_value(column, item) for item in value])

    def where_matches(self, field: FieldRef, value: Any) -> None:
        predicate = self._match(self._column(field), value)
        if field.is_related:
            predicate = self._exists(field.relation, predicate)
        self.query = self.query.filter(predicate)

    def _relation_sort_key(self, field: FieldRef, direction: str):
        # The related table is aliased so a relationship back to the same
        # table still correlates only the outer row.
        prop = self._relationship(field.relation)
        target = aliased(prop.mapper.class_)
        target_table = inspect(target).selectable
        aggregate = func.min if direction == "asc" else func.max
        key = select(aggregate(getattr(target, field.column)))
        if prop.secondary is not None:
            key = key.where(prop.primaryjoin).where(ClauseAdapter(target_table).traverse(prop.secondaryjoin))
        else:
            remote_side = set(prop.remote_side)
            to_remote = ClauseAdapter(target_table, include_fn=lambda column: column in remote_side)
            key = key.where(to_remote.traverse(prop.primaryjoin))
        return key.correlate(self._mapper.local_table).scalar_subquery()

    def order_by(self, field: FieldRef, direction: str) -> None:
        if not field.is_related:
            key = self._column(field)
        else:
            key = self._relation_sort_key(field, direction)
        self.query = self.query.order_by(asc(key) if direction == "asc" else desc(key))
        for pk in self._mapper.primary_key:
            pk_key = self._mapper.get_property_by_column(pk).key
            if not field.is_related and pk_key == field.column:
                continue
            self.query = self.query.order_by(asc(getattr(self.model, pk_key)))

    # execution

    def fetch_page(self, per_page: int, page: int | None) -> FetchedPage:
        current = page if page is not None else self.default_page
        total = self.query.order_by(None).count()
        items = self.query.offset((current - 1) * per_page).limit(per_page).all()
        _LOG.debug(
            "Fetched %s page=%s per_page=%s rows=%s total=%s",
            self.model.__name__,
            current,
            per_page,
            len(items),
            total,
        )
        return FetchedPage(items=items, total=total, page=current)
