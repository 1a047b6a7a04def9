from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from fastapi import HTTPException, Query, Request

from paginate_helper.core.config import settings
from paginate_helper.core.errors import QueryValidationError
from paginate_helper.schemas.paginate import QueryOptions
from paginate_helper.services.paginate import SORT_DIRECTIONS

_LOG = logging.getLogger("paginate_helper.http")
_FILTER_PARAM_RE = re.compile(r"^filter\[([A-Za-z0-9_]+(?:\.[A-Za-z0-9_]+)?)\]$")


def filters_from_query_params(params, filterable: Iterable[str]) -> dict[str, object]:
    allowed = set(filterable)
    collected: dict[str, list[str]] = {}
    for key, raw in params.multi_items():
        match = _FILTER_PARAM_RE.fullmatch(key)
        if not match or match.group(1) not in allowed:
            continue
        value = str(raw).strip()
        if not value:
            continue
        collected.setdefault(match.group(1), []).append(value)
    return {field: values[0] if len(values) == 1 else values for field, values in collected.items()}


def paginate_params(
    *,
    search_fields: Iterable[str] = (),
    filterable: Iterable[str] = (),
    with_: Iterable[str] = (),
    order_fields: Optional[Iterable[str]] = None,
):
    """Dependency factory reading pagination options from the query string.

    ``search_fields`` and ``with_`` are decided by the endpoint; the client
    controls page, size, search text, sort and ``filter[<field>]`` values for
    the fields listed in ``filterable``.
    """
    search_fields = tuple(search_fields)
    filterable = tuple(filterable)
    with_ = tuple(with_)
    order_fields = tuple(order_fields) if order_fields is not None else None

    def _dependency(
        request: Request,
        page: Optional[int] = Query(default=None, ge=1),
        per_page: int = Query(default=settings.DEFAULT_PER_PAGE, ge=1, le=settings.MAX_PER_PAGE),
        search: Optional[str] = Query(default=None),
        order_by: str = Query(default=settings.DEFAULT_ORDER_BY),
        order_direction: str = Query(default=settings.DEFAULT_ORDER_DIRECTION),
    ) -> QueryOptions:
        direction = order_direction.strip().lower()
        if direction not in SORT_DIRECTIONS:
            raise HTTPException(status_code=400, detail=f'Некорректное направление сортировки "{order_direction}"')
        if order_fields is not None and order_by not in order_fields:
            raise HTTPException(status_code=400, detail=f'Сортировка по полю "{order_by}" недоступна')
        try:
            options = QueryOptions.from_mapping(
                {
                    "page": page,
                    "per_page": per_page,
                    "search": search.strip() if search else None,
                    "search_fields": search_fields,
                    "filters": filters_from_query_params(request.query_params, filterable),
                    "order_by": order_by,
                    "order_direction": direction,
                    "with": with_,
                }
            )
        except QueryValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.message)
        _LOG.debug("Request %s paginate options %s", request.url.path, options)
        return options

    return _dependency
