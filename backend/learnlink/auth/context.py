"""Request-scoped auth context: the resolved user id paired with the session."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from learnlink.auth.dependencies import _get_user_id
from learnlink.database.session import DbSession


class AuthContext:
    """What every service constructor needs: who is acting, and on which session."""

    def __init__(self, user_id: UUID, session: AsyncSession) -> None:
        self.user_id = user_id
        self.session = session


async def get_auth_context(
    user_id: Annotated[UUID, Depends(_get_user_id)],
    session: DbSession,
) -> AuthContext:
    """Build an AuthContext for the current request."""
    return AuthContext(user_id=user_id, session=session)


CurrentAuth = Annotated[AuthContext, Depends(get_auth_context)]
