from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Mapping, Sequence

from paginate_helper.core.config import settings
from paginate_helper.core.errors import (
    InvalidFieldReference,
    InvalidFilterValue,
    InvalidPage,
    InvalidPageSize,
    InvalidSortDirection,
    QueryValidationError,
)
from paginate_helper.schemas.paginate import QueryOptions, QueryResult
from paginate_helper.services.fields import FieldRef, parse_field
from paginate_helper.services.queryable import SEQUENCE_TYPES, FetchedPage, Queryable

_LOG = logging.getLogger("paginate_helper.paginate")

SORT_DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True)
class SearchGroup:
    needle: str
    fields: tuple[FieldRef, ...]


@dataclass(frozen=True)
class FilterTerm:
    field: FieldRef
    value: Any


@dataclass(frozen=True)
class SortKey:
    field: FieldRef
    direction: str


@dataclass(frozen=True)
class QueryPlan:
    relations: tuple[str, ...] = ()
    search: SearchGroup | None = None
    filters: tuple[FilterTerm, ...] = ()
    sort: SortKey | None = None
    per_page: int = 10
    page: int | None = None


def resolve_field(base: Queryable, spec: Any) -> FieldRef:
    ref = parse_field(spec)
    if ref.relation is not None and not base.has_relation(ref.relation):
        raise InvalidFieldReference(f'Неизвестная связь "{ref.relation}" в поле "{ref}"', field=str(ref))
    if not base.has_column(ref.column, ref.relation):
        raise InvalidFieldReference(f'Неизвестное поле "{ref}"', field=str(ref))
    return ref


def plan_eager_loads(plan: QueryPlan, base: Queryable, relations: Sequence[str]) -> QueryPlan:
    for name in relations:
        if not isinstance(name, str) or not base.has_relation(name):
            raise InvalidFieldReference(f'Неизвестная связь "{name}"', field=str(name))
    return replace(plan, relations=tuple(relations))


def plan_search(plan: QueryPlan, base: Queryable, search: str | None, search_fields: Sequence[str]) -> QueryPlan:
    if not search or not search_fields:
        return plan
    fields = tuple(resolve_field(base, spec) for spec in search_fields)
    return replace(plan, search=SearchGroup(needle=search, fields=fields))


def plan_filters(plan: QueryPlan, base: Queryable, filters: Mapping[str, Any]) -> QueryPlan:
    terms = list(plan.filters)
    for spec, value in filters.items():
        if value is None:
            continue
        field = resolve_field(base, spec)
        if isinstance(value, Mapping):
            raise InvalidFilterValue(f'Некорректное значение фильтра для поля "{field}"', field=str(field), value=value)
        if isinstance(value, SEQUENCE_TYPES):
            value = tuple(value)
        base.check_filter_value(field, value)
        terms.append(FilterTerm(field=field, value=value))
    return replace(plan, filters=tuple(terms))


def plan_sort(plan: QueryPlan, base: Queryable, order_by: str, direction: str) -> QueryPlan:
    if direction not in SORT_DIRECTIONS:
        raise InvalidSortDirection(
            f'Некорректное направление сортировки "{direction}" (ожидается asc или desc)',
            field="order_direction",
            value=direction,
        )
    return replace(plan, sort=SortKey(field=resolve_field(base, order_by), direction=direction))


def plan_pagination(plan: QueryPlan, per_page: int, page: int | None) -> QueryPlan:
    if isinstance(per_page, bool) or not isinstance(per_page, int) or per_page <= 0:
        raise InvalidPageSize(f"Некорректный размер страницы: {per_page!r}", field="per_page", value=per_page)
    if page is not None and (isinstance(page, bool) or not isinstance(page, int) or page < 1):
        raise InvalidPage(f"Некорректный номер страницы: {page!r}", field="page", value=page)
    return replace(plan, per_page=per_page, page=page)


def build_plan(base: Queryable, options: QueryOptions | Mapping[str, Any] | None) -> QueryPlan:
    """Validate ``options`` against ``base`` and return the stage-ordered plan.

    Nothing is sent to ``base`` besides introspection and filter value
    checks, so every ``QueryValidationError`` surfaces before the queryable
    is narrowed or the store is touched.
    """
    try:
        opts = QueryOptions.from_mapping(options)
        plan = QueryPlan()
        plan = plan_eager_loads(plan, base, opts.with_)
        plan = plan_search(plan, base, opts.search, opts.search_fields)
        plan = plan_filters(plan, base, opts.filters)
        plan = plan_sort(plan, base, opts.order_by, opts.order_direction)
        plan = plan_pagination(plan, opts.per_page, opts.page)
    except QueryValidationError as exc:
        _LOG.warning("Rejected query options field=%s: %s", exc.field, exc.message)
        raise
    _LOG.log(logging.INFO if settings.LOG_QUERY_PLAN else logging.DEBUG, "Query plan %s", plan)
    return plan


def apply_plan(base: Queryable, plan: QueryPlan) -> Queryable:
    if plan.relations:
        base.attach(plan.relations)
    if plan.search is not None:
        base.where_any_contains(plan.search.fields, plan.search.needle)
    for term in plan.filters:
        base.where_matches(term.field, term.value)
    if plan.sort is not None:
        base.order_by(plan.sort.field, plan.sort.direction)
    return base


def _result(fetched: FetchedPage, plan: QueryPlan) -> QueryResult:
    _LOG.debug("Paginated page=%s per_page=%s total=%s", fetched.page, plan.per_page, fetched.total)
    return QueryResult(
        items=list(fetched.items),
        total=fetched.total,
        page=fetched.page,
        per_page=plan.per_page,
    )


def paginate(base: Queryable, options: QueryOptions | Mapping[str, Any] | None = None) -> QueryResult:
    """Search, filter, sort and paginate ``base`` according to ``options``.

    Stages run in a fixed order: eager loads, search group, filters, sort,
    pagination. The total is counted over the searched and filtered set.
    Store errors propagate unchanged.
    """
    plan = build_plan(base, options)
    apply_plan(base, plan)
    return _result(base.fetch_page(plan.per_page, plan.page), plan)


async def paginate_async(base: Queryable, options: QueryOptions | Mapping[str, Any] | None = None) -> QueryResult:
    """Same pipeline as ``paginate`` for queryables whose ``fetch_page`` is awaitable."""
    plan = build_plan(base, options)
    apply_plan(base, plan)
    return _result(await base.fetch_page(plan.per_page, plan.page), plan)
