"""文章审核 API."""

import logging
from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from newsdesk.api.deps import get_service, require_admin
from newsdesk.config import Settings, get_settings
from newsdesk.core.clock import parse_timestamp
from newsdesk.core.errors import ValidationError
from newsdesk.core.lifecycle import Approve, ArticleState, PublishNow, Reject
from newsdesk.core.service import ArticleService, serialize_article

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/articles",
    tags=["articles"],
    dependencies=[Depends(require_admin)],
)

# 读者可见的文章列表不需要鉴权
public_router = APIRouter(prefix="/articles", tags=["articles"])


class ApproveRequest(BaseModel):
    """审核通过请求."""

    auto_publish: bool | None = None
    scheduled_publish_at: str | None = None


class PublishRequest(BaseModel):
    """手动发布请求."""

    override: bool = True


class CreateArticleRequest(BaseModel):
    """人工录入文章."""

    title: str
    summary: str
    original_url: str
    source: str | None = None
    category: str | None = None
    image_url: str | None = None


@public_router.get("/published")
async def list_published(
    page: int = Query(1, ge=1, description="页码"),
    limit: int = Query(20, ge=1, le=100, description="每页数量"),
    service: ArticleService = Depends(get_service),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """获取已发布文章（最新优先）."""
    items, total = await service.list_published(page, limit)
    return {
        "success": True,
        "total": total,
        "page": page,
        "limit": limit,
        "data": [
            serialize_article(a, settings.local_utc_offset_minutes) for a in items
        ],
    }


@router.get("/pending")
async def list_pending(
    page: int = Query(1, ge=1, description="页码"),
    limit: int = Query(50, ge=1, le=200, description="每页数量"),
    service: ArticleService = Depends(get_service),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """获取待审核的自动生成文章."""
    items, total = await service.list_pending(page, limit)
    return {
        "success": True,
        "total": total,
        "page": page,
        "limit": limit,
        "data": [
            serialize_article(a, settings.local_utc_offset_minutes) for a in items
        ],
    }


@router.get("")
async def list_articles(
    state: ArticleState | None = Query(None, description="生命周期状态"),
    page: int = Query(1, ge=1, description="页码"),
    limit: int = Query(50, ge=1, le=200, description="每页数量"),
    service: ArticleService = Depends(get_service),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """获取全部文章（最新优先），用于查找排期或已审核的文章."""
    items, total = await service.list_articles(state, page, limit)
    return {
        "success": True,
        "total": total,
        "page": page,
        "limit": limit,
        "data": [
            serialize_article(a, settings.local_utc_offset_minutes) for a in items
        ],
    }


@router.post("")
async def create_article(
    body: CreateArticleRequest,
    service: ArticleService = Depends(get_service),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """人工录入文章，进入待审核状态."""
    fields = body.model_dump()
    missing = [
        name
        for name in ("title", "summary", "original_url")
        if not (fields.get(name) or "").strip()
    ]
    if missing:
        raise ValidationError(
            f"缺少必填字段: {', '.join(missing)}", missing_fields=missing
        )

    article = await service.create_entry(fields)
    logger.info(f"人工录入文章: {article.id}")
    return {
        "success": True,
        "data": serialize_article(article, settings.local_utc_offset_minutes),
    }


@router.get("/{article_id}")
async def get_article(
    article_id: str,
    service: ArticleService = Depends(get_service),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """获取文章详情."""
    article = await service.get(article_id)
    return {
        "success": True,
        "data": serialize_article(article, settings.local_utc_offset_minutes),
    }


@router.post("/{article_id}/approve")
async def approve_article(
    article_id: str,
    body: ApproveRequest | None = None,
    service: ArticleService = Depends(get_service),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """审核通过：立即发布或排期发布.

    scheduled_publish_at 不带时区时按本地时区（UTC+05:30）解释。两者都未提供时
    默认 30 分钟后发布。
    """
    body = body or ApproveRequest()

    scheduled_at = None
    if body.scheduled_publish_at:
        try:
            scheduled_at = parse_timestamp(
                body.scheduled_publish_at, settings.local_utc_offset_minutes
            )
        except ValueError:
            raise ValidationError(
                "scheduled_publish_at 不是有效的 ISO8601 时间",
                value=body.scheduled_publish_at,
            ) from None

    event = Approve(
        auto_publish=bool(body.auto_publish),
        scheduled_publish_at=scheduled_at,
        default_delay=timedelta(minutes=settings.approve_default_delay_minutes),
    )
    article = await service.apply(article_id, event)
    return {
        "success": True,
        "data": serialize_article(article, settings.local_utc_offset_minutes),
    }


@router.post("/{article_id}/reject")
async def reject_article(
    article_id: str,
    service: ArticleService = Depends(get_service),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """拒绝文章（终态）."""
    article = await service.apply(article_id, Reject())
    return {
        "success": True,
        "data": serialize_article(article, settings.local_utc_offset_minutes),
    }


@router.post("/{article_id}/publish")
async def publish_article(
    article_id: str,
    body: PublishRequest | None = None,
    service: ArticleService = Depends(get_service),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """手动发布（默认忽略计划时间）."""
    body = body or PublishRequest()
    article = await service.apply(article_id, PublishNow(override=body.override))
    return {
        "success": True,
        "data": serialize_article(article, settings.local_utc_offset_minutes),
    }
