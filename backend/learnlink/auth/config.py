"""Current-user resolution.

Credentials are verified upstream (gateway / identity service). This module
only turns what the upstream forwarded into a user id.
"""

import logging
from uuid import UUID

from fastapi import Request

from learnlink.auth.exceptions import InvalidUserIdError, MissingUserError, UnknownAuthProviderError
from learnlink.config.settings import get_settings


logger = logging.getLogger(__name__)

# Single-user mode identity, also seeded as a user row on startup
DEFAULT_USER_ID = UUID("00000000-0000-0000-0000-000000000001")

USER_ID_HEADER = "X-User-Id"


def _extract_user_id_from_request(request: Request) -> UUID:
    raw = request.headers.get(USER_ID_HEADER, "").strip()
    if not raw:
        logger.warning("Missing %s header in multi-user mode", USER_ID_HEADER)
        raise MissingUserError

    try:
        return UUID(raw)
    except ValueError as e:
        logger.warning("Rejected malformed %s header", USER_ID_HEADER)
        raise InvalidUserIdError from e


async def get_user_id(request: Request) -> UUID:
    """
    Resolve the caller's user id.

    Single-user mode (``AUTH_PROVIDER=none``): always DEFAULT_USER_ID.
    Header mode (``AUTH_PROVIDER=header``): the gateway-provided ``X-User-Id``.
    """
    settings = get_settings()

    if settings.AUTH_PROVIDER == "none":
        if settings.ENVIRONMENT == "production":
            logger.error("AUTH_PROVIDER='none' is not allowed in production!")
            error_msg = "Single-user mode (AUTH_PROVIDER='none') is not allowed in production."
            raise ValueError(error_msg)
        return DEFAULT_USER_ID

    if settings.AUTH_PROVIDER == "header":
        return _extract_user_id_from_request(request)

    logger.error(f"Unknown auth provider: {settings.AUTH_PROVIDER}")
    raise UnknownAuthProviderError(settings.AUTH_PROVIDER)
