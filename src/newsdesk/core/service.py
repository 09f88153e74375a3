"""文章工作流服务 - 生命周期引擎 + 条件写入."""

import json
import logging
from datetime import datetime
from typing import Any

from newsdesk.core.clock import ensure_utc, utc_now, utc_to_local
from newsdesk.core.errors import Conflict, NotFound
from newsdesk.core.lifecycle import (
    ApprovalStatus,
    ArticleState,
    LifecycleEvent,
    Transition,
    apply_event,
    derive_state,
    project,
)
from newsdesk.core.store import ArticleStore
from newsdesk.models.article import Article

logger = logging.getLogger(__name__)

_TIMESTAMP_FIELDS = (
    "scheduled_publish_at",
    "published_at",
    "approved_at",
    "created_at",
    "updated_at",
)


def serialize_article(
    article: Article, offset_minutes: int | None = None
) -> dict[str, Any]:
    """转换为 API 响应记录（时间为 UTC ISO8601，可附带本地时间）."""
    tags: list[str] = []
    if article.tags:
        try:
            parsed = json.loads(article.tags)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            tags = [str(tag) for tag in parsed]
        else:
            logger.warning(
                f"文章 {article.id} 的标签数据损坏，已忽略: {article.tags!r}"
            )

    record: dict[str, Any] = {
        "id": article.id,
        "title": article.title,
        "summary": article.summary,
        "original_url": article.original_url,
        "source": article.source,
        "category": article.category,
        "image_url": article.image_url,
        "tags": tags,
        "validation_score": article.validation_score,
        "approval_status": article.approval_status,
        "status": article.status,
        "state": derive_state(article).value,
        "is_published": article.is_published,
        "auto_generated": article.auto_generated,
    }
    for name in _TIMESTAMP_FIELDS:
        value = ensure_utc(getattr(article, name))
        record[name] = value.isoformat() if value else None

    if offset_minutes is not None:
        for name in ("scheduled_publish_at", "published_at"):
            local = utc_to_local(getattr(article, name), offset_minutes)
            record[f"{name}_local"] = local.isoformat() if local else None

    return record


class ArticleService:
    """文章工作流服务.

    每次状态变更: 读取快照 -> 引擎计算 -> 按快照状态做条件写入。
    条件写入影响 0 行说明并发写入者已先一步修改该行，报告 Conflict。
    """

    def __init__(self, store: ArticleStore) -> None:
        self.store = store

    async def get(self, article_id: str) -> Article:
        """读取文章，不存在时抛出 NotFound."""
        article = await self.store.get(article_id)
        if article is None:
            raise NotFound("文章不存在", article_id=article_id)
        return article

    async def apply(
        self,
        article_id: str,
        event: LifecycleEvent,
        now: datetime | None = None,
    ) -> Article:
        """对文章应用生命周期事件并持久化，返回更新后的记录."""
        now = now or utc_now()
        article = await self.get(article_id)
        transition = apply_event(article, event, now)
        return await self.commit(transition)

    async def commit(self, transition: Transition) -> Article:
        """执行条件写入."""
        if transition.noop:
            return await self.get(transition.article_id)

        affected = await self.store.update(
            transition.article_id,
            transition.fields,
            expected=transition.expected,
        )
        if affected == 0:
            current = await self.store.get(transition.article_id)
            if current is None:
                raise NotFound("文章不存在", article_id=transition.article_id)
            logger.warning(
                f"并发写入冲突: {transition.article_id} ({transition.event}), "
                f"当前状态={derive_state(current).value}"
            )
            raise Conflict(
                "文章已被其他请求修改，请刷新后重试",
                article_id=transition.article_id,
                state=derive_state(current).value,
            )

        logger.info(
            f"文章 {transition.article_id}: {transition.from_state.value} -> "
            f"{transition.to_state.value} ({transition.event})"
        )
        return await self.get(transition.article_id)

    async def create_entry(self, fields: dict[str, Any]) -> Article:
        """创建人工录入的文章（待审核）."""
        now = utc_now()
        return await self.store.insert(
            {
                **fields,
                "auto_generated": False,
                "approval_status": ApprovalStatus.PENDING,
                "status": "pending",
                "is_published": False,
                "scheduled_publish_at": None,
                "published_at": None,
                "approved_at": None,
                "created_at": now,
                "updated_at": now,
            }
        )

    async def list_pending(
        self, page: int = 1, limit: int = 50
    ) -> tuple[list[Article], int]:
        """待审核的自动生成文章（最新优先）."""
        conditions = (
            Article.approval_status == ApprovalStatus.PENDING,
            Article.auto_generated.is_(True),  # type: ignore[attr-defined]
        )
        total = await self.store.count(*conditions)
        items = await self.store.query(
            *conditions,
            order_by=(Article.created_at.desc(),),  # type: ignore[union-attr]
            offset=(page - 1) * limit,
            limit=limit,
        )
        return items, total

    async def list_articles(
        self,
        state: ArticleState | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[Article], int]:
        """全部文章（最新优先），可按生命周期状态过滤."""
        conditions: tuple[Any, ...] = ()
        if state is not None:
            conditions = tuple(
                getattr(Article, column) == value
                for column, value in project(state).items()
            )
        total = await self.store.count(*conditions)
        items = await self.store.query(
            *conditions,
            order_by=(Article.created_at.desc(),),  # type: ignore[union-attr]
            offset=(page - 1) * limit,
            limit=limit,
        )
        return items, total

    async def list_published(
        self, page: int = 1, limit: int = 20
    ) -> tuple[list[Article], int]:
        """读者可见的文章（最新发布优先）."""
        conditions = (Article.is_published.is_(True),)  # type: ignore[attr-defined]
        total = await self.store.count(*conditions)
        items = await self.store.query(
            *conditions,
            order_by=(Article.published_at.desc(),),  # type: ignore[union-attr]
            offset=(page - 1) * limit,
            limit=limit,
        )
        return items, total
