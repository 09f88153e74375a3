"""自动化草稿接入与机器人回调解析."""

import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from newsdesk.core.clock import utc_now
from newsdesk.core.errors import UnsupportedOperation, ValidationError
from newsdesk.core.lifecycle import Approve, ApprovalStatus, LifecycleEvent, Reject
from newsdesk.core.store import ArticleStore
from newsdesk.models.article import Article

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "summary", "original_url")
OPTIONAL_TEXT_FIELDS = ("source", "category", "image_url")
DEFAULT_SOURCE = "AI Automation"
CALLBACK_PREFIX = "action"
DEFAULT_CALLBACK_DELAY = timedelta(hours=1)


def _clean_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_tags(raw: Any) -> list[str] | None:
    """标签支持列表或逗号分隔字符串，空值丢弃."""
    if raw is None:
        return None
    if isinstance(raw, str):
        items = raw.split(",")
    elif isinstance(raw, list | tuple):
        items = [str(item) for item in raw if item is not None]
    else:
        logger.warning(f"标签格式无法识别，已忽略: {raw!r}")
        return None
    tags = [item.strip() for item in items if item.strip()]
    return tags or None


def parse_score(raw: Any) -> float | None:
    """解析校验评分；非数值时丢弃并记录警告."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        logger.warning(f"validation_score 不是数值，已忽略: {raw!r}")
        return None
    try:
        score = float(raw)
    except (TypeError, ValueError):
        logger.warning(f"validation_score 不是数值，已忽略: {raw!r}")
        return None
    if not math.isfinite(score):
        logger.warning(f"validation_score 不是有限数值，已忽略: {raw!r}")
        return None
    return score


def build_draft_fields(payload: dict[str, Any], now: datetime) -> dict[str, Any]:
    """校验自动化草稿并生成插入字段.

    工作流字段一律由服务端设定，载荷中的状态字段被忽略。
    """
    missing = [name for name in REQUIRED_FIELDS if not _clean_text(payload.get(name))]
    if missing:
        raise ValidationError(
            f"缺少必填字段: {', '.join(missing)}", missing_fields=missing
        )

    fields: dict[str, Any] = {
        name: _clean_text(payload.get(name)) for name in REQUIRED_FIELDS
    }
    for name in OPTIONAL_TEXT_FIELDS:
        fields[name] = _clean_text(payload.get(name))
    fields["source"] = fields["source"] or DEFAULT_SOURCE

    tags = normalize_tags(payload.get("tags"))
    fields["tags"] = json.dumps(tags, ensure_ascii=False) if tags else None
    fields["validation_score"] = parse_score(payload.get("validation_score"))

    fields.update(
        auto_generated=True,
        approval_status=ApprovalStatus.PENDING,
        status="draft",
        is_published=False,
        scheduled_publish_at=None,
        published_at=None,
        approved_at=None,
        created_at=now,
        updated_at=now,
    )
    return fields


async def ingest_draft(
    store: ArticleStore,
    payload: dict[str, Any],
    now: datetime | None = None,
) -> Article:
    """写入一篇自动生成的草稿（调用方负责校验密钥）."""
    fields = build_draft_fields(payload, now or utc_now())
    article = await store.insert(fields)
    logger.info(f"已接入自动化草稿: {article.id} ({article.title})")
    return article


class CallbackOperation(str, Enum):
    """机器人回调操作."""

    REJECT = "reject"
    SCHEDULE = "schedule"
    PUBLISH = "publish"


@dataclass(frozen=True)
class CallbackCommand:
    """解码后的回调命令."""

    operation: CallbackOperation
    article_id: str

    @classmethod
    def decode(cls, payload: Any) -> "CallbackCommand":
        """解析 ``{"callback": {"data": "action:<op>:<id>"}}``.

        Raises:
            ValidationError: 载荷结构不正确.
            UnsupportedOperation: 操作未知.
        """
        callback = payload.get("callback") if isinstance(payload, dict) else None
        data = callback.get("data") if isinstance(callback, dict) else None
        if not isinstance(data, str) or not data.strip():
            raise ValidationError("回调缺少 callback.data")

        parts = data.strip().split(":", 2)
        if len(parts) != 3 or parts[0] != CALLBACK_PREFIX:
            raise ValidationError(
                "回调数据格式应为 action:<operation>:<articleId>", data=data
            )

        _, operation, article_id = parts
        article_id = article_id.strip()
        if not article_id:
            raise ValidationError("回调缺少文章 ID", data=data)

        try:
            op = CallbackOperation(operation.strip().lower())
        except ValueError:
            raise UnsupportedOperation(
                f"不支持的回调操作: {operation}", operation=operation
            ) from None

        return cls(operation=op, article_id=article_id)

    def to_event(
        self, schedule_delay: timedelta = DEFAULT_CALLBACK_DELAY
    ) -> LifecycleEvent:
        """映射为生命周期事件（回调默认排期 1 小时后）."""
        if self.operation is CallbackOperation.REJECT:
            return Reject()
        if self.operation is CallbackOperation.SCHEDULE:
            return Approve(auto_publish=False, default_delay=schedule_delay)
        return Approve(auto_publish=True)

    @property
    def message(self) -> str:
        return {
            CallbackOperation.REJECT: "文章已拒绝",
            CallbackOperation.SCHEDULE: "文章已通过并排期发布",
            CallbackOperation.PUBLISH: "文章已通过并发布",
        }[self.operation]
