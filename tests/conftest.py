"""테스트 인프라 — 인메모리 SQLite DB, 세션, 시드 데이터 픽스처.

Test infrastructure — In-memory SQLite (aiosqlite) engine, session, and seed
data fixtures. Each test gets its own database; schema is created on the
fresh engine and dropped with it.
"""

from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from fluent_repository.database import Base, get_db
from tests.api import app
from tests.models import Article, ArticleRepository, Author, PublishedArticleRepository, Tag, TagRepository

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ---------------------------------------------------------------------------
# Function-scoped: 엔진, 세션
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """테스트용 async 엔진. 스키마를 생성합니다."""
    eng = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """각 테스트에 격리된 DB 세션을 제공합니다."""
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------------------------
# 헬퍼 픽스처: 테스트용 데이터 생성
# ---------------------------------------------------------------------------
def _day(day: int) -> datetime:
    return datetime(2024, 1, day, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def author(db: AsyncSession) -> Author:
    """테스트 작성자를 생성합니다."""
    a = Author(id=1, name="Kim")
    db.add(a)
    await db.flush()
    return a


@pytest_asyncio.fixture
async def articles(db: AsyncSession, author: Author) -> list[Article]:
    """게시글 4개를 생성합니다.

    created_at 내림차순: Charlie, Bravo, Delta, Alpha
    title 오름차순: Alpha, Bravo, Charlie, Delta
    """
    rows = [
        Article(id=1, title="Alpha", views=250, published=False, author_id=author.id, created_at=_day(1)),
        Article(id=2, title="Bravo", views=40, published=True, author_id=author.id, created_at=_day(3)),
        Article(id=3, title="Charlie", views=120, published=True, author_id=None, created_at=_day(4)),
        Article(id=4, title="Delta", views=10, published=True, author_id=author.id, created_at=_day(2)),
    ]
    db.add_all(rows)
    await db.flush()
    return rows


@pytest_asyncio.fixture
async def tags(db: AsyncSession) -> list[Tag]:
    """태그 5개를 생성합니다."""
    rows = [Tag(id=i, name=f"tag-{i}") for i in range(1, 6)]
    db.add_all(rows)
    await db.flush()
    return rows


@pytest.fixture
def repo(db: AsyncSession) -> ArticleRepository:
    return ArticleRepository(db)


@pytest.fixture
def published_repo(db: AsyncSession) -> PublishedArticleRepository:
    return PublishedArticleRepository(db)


@pytest.fixture
def tag_repo(db: AsyncSession) -> TagRepository:
    return TagRepository(db)


@pytest_asyncio.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """FastAPI 테스트 클라이언트 — DB 세션을 오버라이드합니다."""
    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
