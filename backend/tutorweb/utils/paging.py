"""Utilities for parsing pagination and sorting query parameters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple

from pymongo import ASCENDING, DESCENDING


class PagingParamError(ValueError):
    """Raised when pagination or sort query parameters are invalid."""


@dataclass
class PagingParams:
    page: int
    limit: int
    sort: Tuple[str, int]

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def _parse_int_arg(
    raw_value: str | None,
    *,
    name: str,
    default: int,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    if raw_value in (None, ""):
        value = default
    else:
        try:
            value = int(raw_value)
        except (TypeError, ValueError):
            raise PagingParamError(f"{name} must be an integer.") from None

    if minimum is not None and value < minimum:
        raise PagingParamError(f"{name} must be ≥ {minimum}.")
    if maximum is not None and value > maximum:
        raise PagingParamError(f"{name} must be ≤ {maximum}.")

    return value


def _parse_sort_args(
    raw_sort_by: str | None,
    raw_sort_order: str | None,
    *,
    allowed_fields: Mapping[str, str],
    default_sort: str,
    default_order: str,
) -> Tuple[str, int]:
    if not allowed_fields:
        raise PagingParamError("No sort fields configured.")

    field_key = raw_sort_by or default_sort
    if field_key not in allowed_fields:
        raise PagingParamError(
            "sortBy must be one of: " + ", ".join(sorted(allowed_fields)) + "."
        )

    order = (raw_sort_order or default_order).lower()
    if order not in ("asc", "desc"):
        raise PagingParamError("sortOrder must be one of: asc, desc.")

    return allowed_fields[field_key], ASCENDING if order == "asc" else DESCENDING


def parse_paging_params(
    args: Mapping[str, str],
    *,
    default_page: int = 1,
    default_limit: int = 10,
    max_limit: int = 100,
    allowed_sort_fields: Mapping[str, str] | None = None,
    default_sort: str = "createdAt",
    default_order: str = "desc",
) -> PagingParams:
    """Parse ``page``/``limit``/``sortBy``/``sortOrder`` from request args."""

    page = _parse_int_arg(
        args.get("page"),
        name="page",
        default=default_page,
        minimum=1,
    )

    limit = _parse_int_arg(
        args.get("limit"),
        name="limit",
        default=default_limit,
        minimum=1,
        maximum=max_limit,
    )

    sort = _parse_sort_args(
        args.get("sortBy"),
        args.get("sortOrder"),
        allowed_fields=allowed_sort_fields or {"createdAt": "createdAt"},
        default_sort=default_sort,
        default_order=default_order,
    )

    return PagingParams(page=page, limit=limit, sort=sort)


def build_pagination(paging: PagingParams, total: int) -> Dict[str, Any]:
    """Return the pagination block the dashboard reads next to ``data``."""

    total_pages = (total + paging.limit - 1) // paging.limit if total else 0
    return {
        "currentPage": paging.page,
        "totalPages": total_pages,
        "totalItems": total,
        "itemsPerPage": paging.limit,
        "hasNextPage": paging.page < total_pages,
        "hasPrevPage": paging.page > 1,
    }


def paginate(collection, filters: Dict[str, Any], paging: PagingParams, projection=None):
    """Run a counted, sorted, sliced ``find`` and return ``(documents, pagination)``."""

    total = collection.count_documents(filters)
    cursor = (
        collection.find(filters, projection=projection)
        .sort([paging.sort])
        .skip(paging.skip)
        .limit(paging.limit)
    )
    return list(cursor), build_pagination(paging, total)
