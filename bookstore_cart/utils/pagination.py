from sqlalchemy import func
from sqlmodel import Session, select


def paginate(
    *,
    session: Session,
    query,
    page: int = 1,
    limit: int = 10,
    max_limit: int = 100,
):
    """Run ``query`` for one page and return the page with its counts."""
    page = max(page, 1)
    if limit < 1:
        limit = 10
    limit = min(limit, max_limit)

    total = session.exec(
        select(func.count()).select_from(query.subquery())
    ).one()

    results = session.exec(
        query.offset((page - 1) * limit).limit(limit)
    ).all()

    return {
        "total_items": total,
        "total_pages": (total + limit - 1) // limit,
        "current_page": page,
        "limit": limit,
        "results": list(results),
    }
