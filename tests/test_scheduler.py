"""测试后台定时任务."""

import logging
from datetime import timedelta

import pytest

from newsdesk.core.ingest import ingest_draft
from newsdesk.core.lifecycle import Approve
from newsdesk.core.service import ArticleService
from newsdesk.models import database
from newsdesk.scheduler.tasks import purge_rate_limits_task, sweep_task


@pytest.fixture
def bound_session_maker(session_factory, monkeypatch):
    """让后台任务使用测试数据库."""
    monkeypatch.setattr(database, "async_session_maker", lambda: session_factory)
    return session_factory


async def test_sweep_task_publishes_due(
    bound_session_maker, store, test_settings, now
) -> None:
    """后台任务发布到期文章."""
    article = await ingest_draft(
        store, {"title": "X", "summary": "Y", "original_url": "https://z"}, now=now
    )
    await ArticleService(store).apply(
        article.id, Approve(scheduled_publish_at=now - timedelta(days=1)), now=now
    )

    await sweep_task(test_settings)

    saved = await store.get(article.id)
    assert saved is not None
    assert saved.is_published is True


async def test_sweep_task_logs_failures(test_settings, monkeypatch, caplog) -> None:
    """数据库未就绪时只记录日志，不抛出."""

    def not_ready():
        raise RuntimeError("数据库未初始化")

    monkeypatch.setattr(database, "async_session_maker", not_ready)

    with caplog.at_level(logging.ERROR, logger="newsdesk.scheduler.tasks"):
        await sweep_task(test_settings)

    assert "定时发布任务失败" in caplog.text


def test_purge_rate_limits_task(login_limiter, now) -> None:
    login_limiter.hit("10.0.0.1", now=now - timedelta(hours=1))
    purge_rate_limits_task(login_limiter)
    assert len(login_limiter) == 0
