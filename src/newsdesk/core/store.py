"""文章存储适配层.

对数据库会话的薄封装：get / insert / update / query。所有调用都有固定超时，
超时或数据库故障统一转换为 StoreUnavailable。
"""

import asyncio
import logging
from collections.abc import Awaitable, Sequence
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from newsdesk.core.clock import ensure_utc
from newsdesk.core.errors import StoreUnavailable
from newsdesk.models.article import Article

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 5.0


def _to_db(fields: dict[str, Any]) -> dict[str, Any]:
    """时间统一转换为带时区的 UTC（无时区输入按 UTC 解释）."""
    return {
        key: ensure_utc(value) if isinstance(value, datetime) else value
        for key, value in fields.items()
    }


class ArticleStore:
    """文章存储."""

    def __init__(
        self,
        session: AsyncSession,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.session = session
        self.timeout = timeout

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except TimeoutError as e:
            await self._safe_rollback()
            logger.error(f"存储操作超时: {operation} ({self.timeout}s)")
            raise StoreUnavailable(f"存储操作超时: {operation}") from e
        except SQLAlchemyError as e:
            await self._safe_rollback()
            logger.error(f"存储操作失败: {operation}: {e}")
            raise StoreUnavailable(f"存储操作失败: {operation}") from e

    async def _safe_rollback(self) -> None:
        try:
            await self.session.rollback()
        except SQLAlchemyError as e:
            logger.warning(f"回滚失败: {e}")

    async def get(self, article_id: str) -> Article | None:
        """按 ID 读取文章（总是读取最新数据）."""
        return await self._call(
            "get",
            self.session.get(Article, article_id, populate_existing=True),
        )

    async def insert(self, fields: dict[str, Any]) -> Article:
        """插入文章并返回持久化后的记录."""

        async def _insert() -> Article:
            article = Article(**_to_db(fields))
            self.session.add(article)
            await self.session.commit()
            await self.session.refresh(article)
            return article

        return await self._call("insert", _insert())

    async def update(
        self,
        article_id: str,
        fields: dict[str, Any],
        expected: dict[str, Any] | None = None,
    ) -> int:
        """条件更新，返回受影响行数.

        expected 中的列值必须与当前行一致才会写入；返回 0 表示行已被其他写入者修改
        或不存在。
        """
        conditions = [Article.id == article_id]
        for column, value in (expected or {}).items():
            conditions.append(getattr(Article, column) == value)

        stmt = (
            update(Article)
            .where(*conditions)
            .values(**_to_db(fields))
            .execution_options(synchronize_session=False)
        )

        async def _update() -> int:
            result = await self.session.execute(stmt)
            await self.session.commit()
            return result.rowcount or 0

        return await self._call("update", _update())

    async def query(
        self,
        *conditions: Any,
        order_by: Sequence[Any] = (),
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Article]:
        """按条件查询文章列表."""
        stmt = select(Article).where(*conditions).order_by(*order_by).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        async def _query() -> list[Article]:
            result = await self.session.execute(stmt)
            return list(result.scalars().all())

        return await self._call("query", _query())

    async def count(self, *conditions: Any) -> int:
        """按条件统计数量."""
        stmt = select(func.count()).select_from(Article).where(*conditions)

        async def _count() -> int:
            result = await self.session.execute(stmt)
            return int(result.scalar() or 0)

        return await self._call("count", _count())
