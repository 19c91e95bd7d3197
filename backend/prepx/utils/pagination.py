"""
Pagination helpers shared by list endpoints.
"""
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

MAX_PAGE_SIZE = 100


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


async def fetch_page(
    db: AsyncSession,
    query: Select,
    limit: int = 20,
    offset: int = 0,
    with_total: bool = False,
) -> Tuple[List[Any], Optional[int]]:
    """
    Apply limit/offset to a query.

    Returns:
        (items, total) where total is None unless with_total is set
    """
    limit = clamp(limit, 1, MAX_PAGE_SIZE)
    offset = max(0, offset)

    total = None
    if with_total:
        count_result = await db.execute(select(func.count()).select_from(query.order_by(None).subquery()))
        total = count_result.scalar() or 0

    result = await db.execute(query.offset(offset).limit(limit))
    return list(result.scalars().all()), total


def page_meta(total: int, limit: int, offset: int) -> Dict[str, Any]:
    """Offset-style pagination block for list responses"""
    return {
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + limit < total,
    }
