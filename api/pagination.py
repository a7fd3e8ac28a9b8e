from __future__ import annotations

import math
from typing import List, Mapping, Tuple

from flask import request, abort

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def parse_pagination() -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", str(DEFAULT_LIMIT)))
    except ValueError:
        abort(400, description="page and limit must be integers")
    page = max(page, 1)
    limit = max(1, min(limit, MAX_LIMIT))
    return page, limit


def parse_sort(columns: Mapping, default: str) -> List:
    """
    Comma-separated sort fields from ?sort=, '-' prefix for descending.
    Only keys of ``columns`` (API field -> SQLAlchemy column) are accepted.
    """
    sort_param = request.args.get("sort", default)
    fields = [s.strip() for s in sort_param.split(",") if s.strip()]
    order_by = []
    for f in fields:
        desc = f.startswith("-")
        key = f[1:] if desc else f
        col = columns.get(key)
        if col is None:
            abort(400, description=f"Unsupported sort field: {key}. Allowed: {', '.join(columns)}")
        order_by.append(col.desc() if desc else col.asc())
    return order_by


def paginate(query, order_by: List, page: int, limit: int):
    """Return (rows, meta) for one page of ``query``."""
    total = query.order_by(None).count()
    rows = query.order_by(*order_by).offset((page - 1) * limit).limit(limit).all()
    meta = {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit),
    }
    return rows, meta
