"""测试配置和 fixtures."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from newsdesk.api.deps import get_login_limiter
from newsdesk.config import Settings, get_settings
from newsdesk.core.auth import LoginRateLimiter
from newsdesk.core.store import ArticleStore
from newsdesk.main import app
from newsdesk.models.article import Article
from newsdesk.models.database import get_session

ADMIN_TOKEN = "test-admin-token"
AUTOMATION_SECRET = "test-automation-secret"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "correct-horse"

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


def make_article(**overrides: Any) -> Article:
    """构造内存中的文章快照（不写数据库）."""
    fields: dict[str, Any] = {
        "id": "article-1",
        "title": "Model release",
        "summary": "A new model was released.",
        "original_url": "https://example.com/a",
        "approval_status": "pending",
        "status": "draft",
        "is_published": False,
        "auto_generated": True,
        "created_at": NOW - timedelta(hours=1),
        "updated_at": NOW - timedelta(hours=1),
    }
    fields.update(overrides)
    return Article(**fields)


@pytest.fixture
def now() -> datetime:
    """固定的当前时间."""
    return NOW


@pytest.fixture
def article_factory():
    """文章快照工厂."""
    return make_article


@pytest.fixture
def test_settings() -> Settings:
    """测试配置."""
    return Settings(
        _env_file=None,
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        admin_token=ADMIN_TOKEN,
        automation_secret=AUTOMATION_SECRET,
        sweep_enabled=False,
    )


@pytest_asyncio.fixture
async def test_engine():
    """创建测试数据库引擎（内存 SQLite，单连接共享）."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """创建测试会话工厂."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def async_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """创建测试会话."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def store(async_session: AsyncSession) -> ArticleStore:
    """创建文章存储."""
    return ArticleStore(async_session)


@pytest.fixture
def login_limiter() -> LoginRateLimiter:
    """每个测试独立的登录限流器."""
    return LoginRateLimiter()


@pytest_asyncio.fixture
async def client(
    session_factory, test_settings: Settings, login_limiter: LoginRateLimiter
) -> AsyncGenerator[AsyncClient, None]:
    """创建测试客户端."""

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_login_limiter] = lambda: login_limiter

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict[str, str]:
    """管理员请求头."""
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture
def automation_headers() -> dict[str, str]:
    """自动化请求头."""
    return {"x-automation-secret": AUTOMATION_SECRET}
