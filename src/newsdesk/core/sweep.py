"""定时发布扫描 - 发布所有已到计划时间的文章."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from newsdesk.core.clock import ensure_utc, utc_now
from newsdesk.core.errors import Conflict, NewsdeskError
from newsdesk.core.lifecycle import SweepPublish, apply_event
from newsdesk.core.service import ArticleService
from newsdesk.core.store import ArticleStore
from newsdesk.models.article import Article

logger = logging.getLogger(__name__)


class SweepOutcome:
    """单篇处理结果."""

    PUBLISHED = "published"
    NOOP = "noop"
    FAILED = "failed"


@dataclass
class SweepItemResult:
    """单篇文章的扫描结果."""

    article_id: str
    outcome: str
    published_at: datetime | None = None
    error: str | None = None
    code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "articleId": self.article_id,
            "outcome": self.outcome,
            "success": self.outcome != SweepOutcome.FAILED,
            "publishedAt": self.published_at.isoformat() if self.published_at else None,
            "error": self.error,
            "code": self.code,
        }


@dataclass
class SweepResult:
    """一次扫描的汇总."""

    now: datetime
    results: list[SweepItemResult] = field(default_factory=list)

    @property
    def published_count(self) -> int:
        return sum(1 for r in self.results if r.outcome == SweepOutcome.PUBLISHED)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if r.outcome == SweepOutcome.FAILED)

    @property
    def noop_count(self) -> int:
        return sum(1 for r in self.results if r.outcome == SweepOutcome.NOOP)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "now": self.now.isoformat(),
            "publishedCount": self.published_count,
            "failedCount": self.failed_count,
            "noopCount": self.noop_count,
            "results": [r.to_dict() for r in self.results],
        }


async def find_due_articles(store: ArticleStore, now: datetime) -> list[Article]:
    """查询已到计划时间、仍未发布的排期文章."""
    return await store.query(
        Article.status == "scheduled",
        Article.is_published.is_(False),  # type: ignore[attr-defined]
        Article.scheduled_publish_at.isnot(None),  # type: ignore[union-attr]
        Article.scheduled_publish_at <= ensure_utc(now),  # type: ignore[operator]
        order_by=(Article.scheduled_publish_at,),
    )


async def _publish_one(
    service: ArticleService, article_id: str, now: datetime
) -> SweepItemResult:
    # 每篇重新读取：前一篇失败回滚后，批次查询得到的实例已过期
    article = await service.get(article_id)
    transition = apply_event(article, SweepPublish(), now)
    if transition.noop:
        return SweepItemResult(article_id, SweepOutcome.NOOP)

    try:
        updated = await service.commit(transition)
    except Conflict:
        # 另一个扫描已先发布该文章
        current = await service.store.get(article_id)
        if current is not None and current.is_published:
            logger.info(f"文章 {article_id} 已被其他扫描发布，跳过")
            return SweepItemResult(
                article_id,
                SweepOutcome.NOOP,
                published_at=ensure_utc(current.published_at),
            )
        raise

    return SweepItemResult(
        article_id,
        SweepOutcome.PUBLISHED,
        published_at=ensure_utc(updated.published_at),
    )


async def run_sweep(store: ArticleStore, now: datetime | None = None) -> SweepResult:
    """发布所有到期的排期文章.

    单篇失败不会中断整批；可与自身并发执行（依赖条件写入保证幂等）。
    查询本身失败时抛出 StoreUnavailable。
    """
    now = ensure_utc(now) or utc_now()
    service = ArticleService(store)
    sweep = SweepResult(now=now)

    due_ids = [article.id for article in await find_due_articles(store, now)]
    if not due_ids:
        logger.debug("没有到期的排期文章")
        return sweep

    logger.info(f"开始定时发布: {len(due_ids)} 篇文章到期")

    for article_id in due_ids:
        try:
            item = await _publish_one(service, article_id, now)
        except NewsdeskError as e:
            logger.warning(f"定时发布失败: {article_id}: [{e.code}] {e.message}")
            item = SweepItemResult(
                article_id,
                SweepOutcome.FAILED,
                error=e.message,
                code=e.code,
            )
        sweep.results.append(item)

    logger.info(
        f"定时发布完成: 发布={sweep.published_count}, "
        f"跳过={sweep.noop_count}, 失败={sweep.failed_count}"
    )
    if sweep.failed_count:
        failed = {
            r.article_id: r.code
            for r in sweep.results
            if r.outcome == SweepOutcome.FAILED
        }
        logger.warning(f"定时发布部分失败: {failed}")
    return sweep
