"""API 依赖注入."""

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.config import Settings, get_settings
from newsdesk.core.auth import (
    LoginRateLimiter,
    check_admin_token,
    check_automation_secret,
)
from newsdesk.core.service import ArticleService
from newsdesk.core.store import ArticleStore
from newsdesk.models.database import get_session


def get_store(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> ArticleStore:
    """获取文章存储（带超时配置）."""
    return ArticleStore(session, timeout=settings.store_timeout_seconds)


def get_service(store: ArticleStore = Depends(get_store)) -> ArticleService:
    """获取文章工作流服务."""
    return ArticleService(store)


async def require_admin(
    authorization: str | None = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    """管理接口鉴权."""
    check_admin_token(authorization, settings.admin_token)


async def require_automation_secret(
    x_automation_secret: str | None = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    """自动化接口鉴权."""
    check_automation_secret(x_automation_secret, settings.automation_secret)


def get_login_limiter(request: Request) -> LoginRateLimiter:
    """获取进程内的登录限流器（在 main 中创建）."""
    return request.app.state.login_limiter


def client_identifier(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> str:
    """限流使用的客户端标识."""
    if settings.trust_proxy_headers:
        forwarded = request.headers.get("cf-connecting-ip") or request.headers.get(
            "x-forwarded-for"
        )
        if forwarded:
            return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"
