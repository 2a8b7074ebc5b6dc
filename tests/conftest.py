from typing import AsyncGenerator, List, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cutout.config import Settings, get_settings
from cutout.database import get_db, get_session_factory
from cutout.images import ImageRepresentation
from cutout.main import app
from cutout.models import Base
from cutout.removal_backends.mock import MockBackend
from cutout.removal_backends.removebg import RemoveBgBackend
from cutout.removal_client import BackgroundRemovalClient
from cutout.worker import upload_manager

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


class RecordingSink:
    """ImageSink that keeps every call in order."""

    def __init__(self, events: Optional[list] = None):
        self.events: List[Tuple[str, object]] = events if events is not None else []
        self.original: Optional[ImageRepresentation] = None
        self.processed: Optional[ImageRepresentation] = None
        self.uploading = False
        self.processing = False

    async def publish_original(self, image):
        self.original = image
        self.events.append(("original", image))

    async def publish_processed(self, image):
        self.processed = image
        self.events.append(("processed", image))

    async def set_uploading(self, value):
        self.uploading = value
        self.events.append(("uploading", value))

    async def set_processing(self, value):
        self.processing = value
        self.events.append(("processing", value))


class ScriptedNotifier:
    """Notifier that answers the fallback question from a script."""

    def __init__(self, accept_fallback: bool = False):
        self.accept_fallback = accept_fallback
        self.alerts: List[str] = []
        self.prompts: List[str] = []

    async def alert(self, message):
        self.alerts.append(message)

    async def confirm_fallback(self, reason):
        self.prompts.append(reason)
        return self.accept_fallback


def make_removal_client(
    api_key: str = "", transport=None, delay: float = 0.0
) -> BackgroundRemovalClient:
    live = RemoveBgBackend(
        api_key=api_key, url=get_settings().REMOVE_BG_URL, transport=transport
    )
    return BackgroundRemovalClient(live, MockBackend(delay_seconds=delay))


@pytest.fixture
def make_client():
    return make_removal_client


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def notifier() -> ScriptedNotifier:
    return ScriptedNotifier()


@pytest_asyncio.fixture(scope="function")
async def test_db_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_db_engine) -> async_sessionmaker[AsyncSession]:
    return get_session_factory(test_db_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    await upload_manager.start(
        Settings(FALLBACK_PROMPT_TIMEOUT_SECONDS=5.0),
        session_factory,
        removal_client=make_removal_client(),
    )

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    await upload_manager.stop()
    app.dependency_overrides.clear()
