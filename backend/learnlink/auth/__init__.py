"""Authentication module exports."""

from learnlink.auth.config import DEFAULT_USER_ID
from learnlink.auth.context import AuthContext, CurrentAuth
from learnlink.auth.dependencies import UserId


__all__ = [
    "DEFAULT_USER_ID",
    "AuthContext",
    "CurrentAuth",
    "UserId",
]
