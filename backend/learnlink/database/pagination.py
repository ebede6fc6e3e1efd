from typing import Any, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from learnlink.config.settings import get_settings


T = TypeVar("T")


class Paginator:
    """Offset/limit pagination with a total count."""

    def __init__(self, page: int = 1, limit: int | None = None) -> None:
        settings = get_settings()
        self.page = max(page, 1)
        self.limit = min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
        self.offset = (self.page - 1) * self.limit

    async def paginate(self, session: AsyncSession, query: Select[Any]) -> tuple[list[T], int]:
        """
        Run ``query`` for the current page.

        Parameters
        ----------
        session : AsyncSession
            Database session
        query : Select
            Base query, already ordered

        Returns
        -------
        tuple[list[T], int]
            Items on this page and the total across all pages
        """
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        total = await session.scalar(count_query) or 0

        result = await session.execute(query.offset(self.offset).limit(self.limit))
        return list(result.scalars().all()), total
