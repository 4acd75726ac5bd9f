"""데이터베이스 엔진 및 세션 설정 모듈.

Database engine and session configuration module.
Sets up the async SQLAlchemy engine, session factory, and ORM base class.
The engine is created on first use so that importing the models does not
require a reachable database or an installed driver.
"""

from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from fluent_repository.config import settings


class Base(DeclarativeBase):
    """SQLAlchemy 선언적 베이스 클래스.

    Declarative base class for all ORM models managed by repositories.
    """

    pass


@lru_cache
def get_engine() -> AsyncEngine:
    """비동기 데이터베이스 엔진을 생성합니다 (최초 1회).

    Create the async database engine once per process.
    pool_pre_ping=True: 커넥션 풀에서 꺼낸 연결의 유효성을 사전 확인 (Validates connections before use)
    """
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_pre_ping=True,
    )


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """비동기 세션 팩토리 — Async session factory.

    expire_on_commit=False: 커밋 후에도 객체 속성 접근 가능 (Allows attribute access after commit without refresh)
    """
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """비동기 데이터베이스 세션을 생성하고 작업 단위 종료 시 닫습니다.

    Yield an async database session for one unit of work.
    Repositories only add/flush; commit and rollback belong to the caller.
    Usable directly as a FastAPI dependency.

    Yields:
        AsyncSession: SQLAlchemy 비동기 세션 인스턴스 (Async session instance)
    """
    async with get_session_factory()() as session:
        try:
            yield session
        finally:
            await session.close()
