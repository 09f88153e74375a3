"""定时任务定义."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from newsdesk.config import Settings
from newsdesk.core.auth import LoginRateLimiter

logger = logging.getLogger(__name__)

_scheduler: AsyncIOScheduler | None = None


async def sweep_task(settings: Settings) -> None:
    """定时发布任务：发布所有到期的排期文章."""
    from newsdesk.core.store import ArticleStore
    from newsdesk.core.sweep import run_sweep
    from newsdesk.models.database import async_session_maker

    try:
        async with async_session_maker()() as session:
            store = ArticleStore(session, timeout=settings.store_timeout_seconds)
            result = await run_sweep(store)
            if result.results:
                logger.info(
                    f"定时发布任务完成: 发布={result.published_count}, "
                    f"失败={result.failed_count}"
                )
    except Exception as e:
        logger.exception(f"定时发布任务失败: {e}")


def purge_rate_limits_task(limiter: LoginRateLimiter) -> None:
    """清理过期的登录限流记录."""
    removed = limiter.purge_expired()
    if removed:
        logger.debug(f"已清理 {removed} 条过期限流记录")


def create_scheduler(
    settings: Settings, limiter: LoginRateLimiter | None = None
) -> AsyncIOScheduler:
    """创建并启动定时任务调度器."""
    global _scheduler

    _scheduler = AsyncIOScheduler()

    if settings.sweep_enabled:
        # 同一时刻只运行一个实例；重叠调用由条件写入保证幂等
        _scheduler.add_job(
            sweep_task,
            "interval",
            minutes=settings.sweep_interval_minutes,
            args=[settings],
            id="sweep_task",
            name="定时发布扫描",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        # 启动时立即执行一次
        _scheduler.add_job(
            sweep_task,
            "date",  # 一次性任务
            args=[settings],
            id="sweep_task_initial",
            name="初始定时发布扫描",
        )

    if limiter is not None:
        _scheduler.add_job(
            purge_rate_limits_task,
            "interval",
            seconds=settings.login_window_seconds,
            args=[limiter],
            id="purge_rate_limits",
            name="清理登录限流记录",
            replace_existing=True,
        )

    _scheduler.start()
    logger.info(
        f"定时任务调度器已启动，扫描间隔: {settings.sweep_interval_minutes} 分钟"
    )

    return _scheduler


async def shutdown_scheduler() -> None:
    """关闭定时任务调度器."""
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        logger.info("定时任务调度器已关闭")
        _scheduler = None
