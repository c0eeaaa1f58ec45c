from __future__ import annotations

import os

# Settings are validated at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./unused.sqlite")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("GOOGLE_API_KEY", "test-key")
os.environ.setdefault("LOG_FILE", "")

from typing import AsyncGenerator, Dict, Optional

import pytest
import pytest_asyncio
from fastapi import FastAPI, HTTPException, status
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

import app.models  # noqa: F401
from app.api.v1.routes.auth.auth import get_current_user
from app.db.deps import Base, get_db
from app.main import app as main_app
from app.models.user import User


@pytest.fixture()
def test_db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'test.sqlite'}"


@pytest_asyncio.fixture()
async def engine(test_db_url: str):
    engine = create_async_engine(test_db_url, future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture()
def acting_user() -> Dict[str, Optional[User]]:
    """Holder for the user the API sees as authenticated; tests set ``["user"]``."""
    return {"user": None}


@pytest.fixture()
def test_app() -> FastAPI:
    return main_app


@pytest_asyncio.fixture()
async def client(
    test_app: FastAPI,
    db_session: AsyncSession,
    acting_user: Dict[str, Optional[User]],
) -> AsyncGenerator[AsyncClient, None]:
    async def _get_test_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    async def _get_acting_user():
        user = acting_user["user"]
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not validate credentials",
            )
        return user

    test_app.dependency_overrides[get_db] = _get_test_db
    test_app.dependency_overrides[get_current_user] = _get_acting_user

    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client

    test_app.dependency_overrides.clear()
