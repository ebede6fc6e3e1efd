from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from learnlink.database.engine import engine


def build_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory for an engine.

    ``expire_on_commit=False`` keeps loaded plan/overlay rows readable after the
    service commits, which the response builders rely on.
    """
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


async_session_maker = build_session_maker(engine)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped session.

    Services own their commits. Anything escaping the request rolls back the
    open transaction so a half-applied mutation is never committed.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


DbSession = Annotated[AsyncSession, Depends(get_db_session)]
