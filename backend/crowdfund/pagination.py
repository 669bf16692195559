import math
from typing import Any, Dict, List, Tuple

MAX_LIMIT = 100


def paginate(query, page: int, limit: int) -> Tuple[List[Any], Dict[str, Any]]:
    """Apply offset/limit to ``query``; returns the page and its metadata."""
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_LIMIT)
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, {
        "current_page": page,
        "total_pages": math.ceil(total / limit) if total else 0,
        "total": total,
        "has_next": (page - 1) * limit + len(items) < total,
        "has_prev": page > 1,
    }
