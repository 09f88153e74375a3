"""自动化接入 API - 草稿 webhook 与机器人回调."""

import logging
from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Body, Depends

from newsdesk.api.deps import get_service, get_store, require_automation_secret
from newsdesk.config import Settings, get_settings
from newsdesk.core.errors import ValidationError
from newsdesk.core.ingest import CallbackCommand, ingest_draft
from newsdesk.core.service import ArticleService, serialize_article
from newsdesk.core.store import ArticleStore

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["ingest"],
    dependencies=[Depends(require_automation_secret)],
)


@router.post("/ingest/article")
async def ingest_article(
    payload: Any = Body(None),
    store: ArticleStore = Depends(get_store),
) -> dict[str, Any]:
    """接收自动化系统生成的草稿文章."""
    if not isinstance(payload, dict):
        raise ValidationError("请求体必须是 JSON 对象")

    article = await ingest_draft(store, payload)
    return {"success": True, "articleId": article.id}


@router.post("/callback")
async def handle_callback(
    payload: Any = Body(None),
    service: ArticleService = Depends(get_service),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """处理机器人回调 ``action:<operation>:<articleId>``."""
    command = CallbackCommand.decode(payload)
    event = command.to_event(
        schedule_delay=timedelta(minutes=settings.callback_schedule_delay_minutes)
    )
    logger.info(f"收到回调: {command.operation.value} {command.article_id}")

    article = await service.apply(command.article_id, event)
    return {
        "success": True,
        "message": command.message,
        "data": serialize_article(article, settings.local_utc_offset_minutes),
    }
