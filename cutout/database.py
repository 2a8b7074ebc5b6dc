import logging
from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from cutout.config import Settings, get_settings
from cutout.crud import mark_interrupted
from cutout.models import Base

logger = logging.getLogger(__name__)


def get_engine(settings: Optional[Settings] = None) -> AsyncEngine:
    settings = settings or get_settings()
    return create_async_engine(
        f"sqlite+aiosqlite:///{settings.DB_PATH}",
        echo=False,
        connect_args={"check_same_thread": False},
    )


def get_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, expire_on_commit=False, class_=AsyncSession)


engine = get_engine()
AsyncSessionLocal = get_session_factory(engine)


async def init_db(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> int:
    """Create tables and fail uploads a previous process left busy.

    Both happen in one transaction, before any new upload is accepted.
    Returns the number of recovered uploads.
    """
    session_factory = session_factory or AsyncSessionLocal
    async with session_factory() as db:
        await db.run_sync(
            lambda session: Base.metadata.create_all(session.connection())
        )
        interrupted = await mark_interrupted(db)
        await db.commit()

    if interrupted:
        logger.warning(f"Marked {interrupted} interrupted upload(s) as failed")
    logger.info("Database initialized")
    return interrupted


async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
