from .base import Base, UTCDateTime
from .engine import create_app_engine, engine
from .pagination import Paginator
from .session import DbSession, async_session_maker, build_session_maker, get_db_session


__all__ = [
    "Base",
    "DbSession",
    "Paginator",
    "UTCDateTime",
    "async_session_maker",
    "build_session_maker",
    "create_app_engine",
    "engine",
    "get_db_session",
]
