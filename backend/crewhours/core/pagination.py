import math
from dataclasses import dataclass

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass
class PaginationParams:
    page: int = 1
    page_size: int = 50

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def get_pagination(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=200, description="Items per page"),
) -> PaginationParams:
    return PaginationParams(page=page, page_size=page_size)


def build_pagination_meta(total_count: int, pagination: PaginationParams) -> dict:
    return {
        "page": pagination.page,
        "page_size": pagination.page_size,
        "total_count": total_count,
        "total_pages": math.ceil(total_count / pagination.page_size) if total_count > 0 else 0,
    }


async def paginate(
    db: AsyncSession, query: Select, pagination: PaginationParams, *order_by
) -> tuple[list, dict]:
    """Run *query* for one page and count all of its rows.

    Rows are reloaded from the database even if already in the session, so a
    list always shows the latest committed statuses.
    """
    total = await db.scalar(select(func.count()).select_from(query.subquery())) or 0
    result = await db.execute(
        query.order_by(*order_by)
        .offset(pagination.offset)
        .limit(pagination.page_size)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), build_pagination_meta(total, pagination)
