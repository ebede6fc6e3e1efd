"""FastAPI authentication dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request

from learnlink.auth.config import get_user_id


async def _get_user_id(request: Request) -> UUID:
    """Resolve the user once per request and remember it on ``request.state``.

    The error handlers read ``request.state.user_id`` for log context.
    """
    if getattr(request.state, "user_id", None) is not None:
        return request.state.user_id

    user_id = await get_user_id(request)
    request.state.user_id = user_id
    return user_id


# Usage: async def my_route(user_id: UserId) -> Response:
UserId = Annotated[UUID, Depends(_get_user_id)]
