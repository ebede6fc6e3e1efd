import logging
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from learnlink.config.settings import get_settings


logger = logging.getLogger(__name__)
settings = get_settings()


def _enable_sqlite_semantics(db_engine: AsyncEngine) -> None:
    """Make SQLite behave like the production database where we depend on it.

    - ``PRAGMA foreign_keys=ON`` so ``ON DELETE CASCADE`` is the one delete path.
    - Driver-level BEGIN disabled and emitted by SQLAlchemy instead, otherwise
      SAVEPOINT (used by the progress overlay create race and side effects)
      does not nest correctly under pysqlite/aiosqlite.
    """

    @event.listens_for(db_engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, _connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(db_engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


def create_app_engine(database_url: str | None = None) -> AsyncEngine:
    """Create the async engine for Postgres (psycopg) or SQLite (aiosqlite).

    - Postgres: standard pool with pre-ping and LIFO reuse.
    - SQLite: used by the test suite and local experiments, no pool tuning.
    """
    database_url = database_url or settings.DATABASE_URL

    if database_url.startswith("sqlite"):
        db_engine = create_async_engine(database_url, echo=False)
        _enable_sqlite_semantics(db_engine)
        logger.debug("Created SQLite engine")
        return db_engine

    return create_async_engine(
        database_url,
        echo=False,  # Set True for SQL debugging
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,  # ~1h
        pool_pre_ping=True,
        pool_use_lifo=True,
        connect_args={"connect_timeout": 10},
    )


engine: AsyncEngine = create_app_engine()
