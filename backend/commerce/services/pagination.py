# Overview: Shared pagination envelope for list endpoints.

from __future__ import annotations

from sqlalchemy import func, select


def pagination_meta(page: int, limit: int, total: int) -> dict:
    total_pages = (total + limit - 1) // limit if total > 0 else 1
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }


def paginate(session, stmt, *, page: int = 1, limit: int = 20, serialize=lambda row: row.to_dict()) -> dict:
    """
    Run ``stmt`` (an ORM select) for one page.

    Returns {"items", "count", "pagination"} like every list endpoint.
    """
    page = max(page, 1)
    total = session.execute(select(func.count()).select_from(stmt.order_by(None).subquery())).scalar_one()
    rows = list(session.execute(stmt.offset((page - 1) * limit).limit(limit)).scalars().unique())
    return {
        "items": [serialize(row) for row in rows],
        "count": len(rows),
        "pagination": pagination_meta(page, limit, total),
    }
