"""
List/paging helpers shared by every list-by-parent operation.

Every list operation accepts the same four knobs and answers the same shape:

    limit, offset, order_by, order_direction
    → {"data": [...], "total": int, "limit": int, "offset": int}

``total`` is the size of the whole filtered set, independent of the page.
``order_by`` is checked against an explicit whitelist of sortable columns
per entity; nothing from the caller is ever interpolated into SQL.
"""

from flask import current_app
from sqlalchemy import func, select

from techledger.core.exceptions import ValidationError
from techledger.models import db

DEFAULT_LIMIT = 50
MAX_LIMIT = 100
ORDER_DIRECTIONS = ("ASC", "DESC")


def _config_int(key: str, fallback: int) -> int:
    try:
        return int(current_app.config.get(key, fallback))
    except (RuntimeError, TypeError, ValueError):
        return fallback


def clamp_paging(limit=None, offset=None) -> tuple[int, int]:
    """Coerce limit/offset into the allowed range.

    Bad or missing numbers fall back to the defaults rather than failing,
    matching how list endpoints have always treated paging parameters.
    """
    default_limit = _config_int("LIST_DEFAULT_LIMIT", DEFAULT_LIMIT)
    max_limit = _config_int("LIST_MAX_LIMIT", MAX_LIMIT)
    try:
        limit = int(limit) if limit is not None else default_limit
    except (TypeError, ValueError):
        limit = default_limit
    limit = min(max(limit, 1), max_limit)
    try:
        offset = max(int(offset), 0) if offset is not None else 0
    except (TypeError, ValueError):
        offset = 0
    return limit, offset


def resolve_ordering(
    sortable: dict,
    order_by: str | None,
    order_direction: str | None,
    default_order: str,
    default_direction: str = "ASC",
):
    """Return the ORDER BY clause for a whitelisted column and direction.

    Raises:
        ValidationError: unknown column or direction.
    """
    order_by = order_by or default_order
    column = sortable.get(order_by)
    if column is None:
        raise ValidationError(
            f"Cannot order by '{order_by}'",
            details={"orderBy": f"Must be one of: {', '.join(sorted(sortable))}"},
        )
    direction = (order_direction or default_direction).upper()
    if direction not in ORDER_DIRECTIONS:
        raise ValidationError(
            f"Invalid order direction '{order_direction}'",
            details={"orderDirection": "Must be ASC or DESC"},
        )
    return column.asc() if direction == "ASC" else column.desc()


def paginate(stmt, *, limit: int, offset: int, order_clauses=(), mapper=None, scalars=True) -> dict:
    """Execute ``stmt`` with a total count and one page of rows.

    Args:
        stmt: A ``select()`` already filtered down to the parent's children.
        limit / offset: Already clamped via ``clamp_paging``.
        order_clauses: ORDER BY expressions, applied in order.
        mapper: Callable turning one result (model or Row) into a dict.
                Defaults to ``obj.to_dict()``.
        scalars: True when ``stmt`` selects a single entity.
    """
    total = db.session.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    ).scalar_one()

    page_stmt = stmt.order_by(*order_clauses).limit(limit).offset(offset)
    result = db.session.execute(page_stmt)
    rows = result.scalars().all() if scalars else result.all()
    mapper = mapper or (lambda obj: obj.to_dict())

    return {
        "data": [mapper(row) for row in rows],
        "total": total,
        "limit": limit,
        "offset": offset,
    }
