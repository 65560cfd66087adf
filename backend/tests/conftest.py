"""Pytest configuration and fixtures for testing."""
from typing import AsyncGenerator, List, Optional

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from track_inspector.core.deps import get_cleanup_media
from track_inspector.core.exceptions import UpstreamError
from track_inspector.db.database import get_db
from track_inspector.main import app
from track_inspector.models import Base
from track_inspector.schemas.shared import ReportCreate, UserCreate
from track_inspector.services.media_gateway import MediaGateway, get_media_gateway
from track_inspector.services.report_store import ReportStore
from track_inspector.services.user_store import UserStore


# In-memory SQLite shared by every connection of one test
TEST_DATABASE_URL = "sqlite+aiosqlite://"


class FakeMediaGateway(MediaGateway):
    """Records calls instead of talking to an image host."""

    def __init__(self, fail_delete: bool = False):
        super().__init__("cgr_track_inspector", ["jpg", "jpeg", "png"])
        self.fail_delete = fail_delete
        self.uploaded: List[str] = []
        self.deleted: List[str] = []

    async def upload_file(self, data: bytes, filename: str, content_type: Optional[str] = None) -> str:
        self._check_format(filename)
        self.uploaded.append(filename)
        return f"https://media.test/{self.folder}/{filename}"

    async def upload_base64(self, image: str) -> str:
        self._require_image(image)
        self.uploaded.append("<base64>")
        return f"https://media.test/{self.folder}/inline.png"

    async def delete(self, public_id: str) -> bool:
        self.deleted.append(public_id)
        if self.fail_delete:
            raise UpstreamError("Image delete failed")
        return True


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after tests
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def media() -> FakeMediaGateway:
    return FakeMediaGateway()


@pytest.fixture
def failing_media() -> FakeMediaGateway:
    return FakeMediaGateway(fail_delete=True)


@pytest.fixture
def report_store(db_session, media) -> ReportStore:
    return ReportStore(db_session, media)


@pytest.fixture
def user_store(db_session) -> UserStore:
    return UserStore(db_session)


@pytest_asyncio.fixture
async def client(db_session, media) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client bound to the app with the test session and fake media host."""

    async def _get_test_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_media_gateway] = lambda: media
    app.dependency_overrides[get_cleanup_media] = lambda: media

    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()


@pytest.fixture
def rail_crack() -> ReportCreate:
    """The minimal report the console creates from the inspection form."""
    return ReportCreate(defect_type="Rail Crack", location="Sector A-12", risk_level="High")


@pytest.fixture
def engineer() -> UserCreate:
    return UserCreate(
        name="Sarah Engineer",
        email="sarah@cgr.com",
        role="engineer",
        password="password123",
        department="Track Maintenance",
        expertise=["welding", "ultrasonic testing"],
    )
