"""Database initialization - creates tables and the single-user mode profile."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from learnlink.auth.config import DEFAULT_USER_ID
from learnlink.database.models import Base
from learnlink.users.models import User


logger = logging.getLogger(__name__)


async def init_database(db_engine: AsyncEngine) -> None:
    """Create all tables and make sure the default user exists."""
    async with db_engine.begin() as conn:
        logger.info("Creating database tables from models...")
        await conn.run_sync(Base.metadata.create_all)
        logger.info("All tables created successfully")

        logger.info("Ensuring default user exists...")
        await _ensure_default_user(conn)

    logger.info("Database initialization completed successfully")


async def _ensure_default_user(conn: AsyncConnection) -> None:
    """Create the profile used when AUTH_PROVIDER=none."""
    existing = await conn.scalar(select(User.id).where(User.id == DEFAULT_USER_ID))
    if existing is not None:
        logger.info("Default user already exists")
        return

    await conn.execute(User.__table__.insert().values(id=DEFAULT_USER_ID, name="Default User"))
    logger.info(f"Created default user {DEFAULT_USER_ID}")
