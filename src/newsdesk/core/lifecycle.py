"""文章生命周期状态机.

引擎是纯函数：输入文章快照、事件和显式的 ``now``，输出要写入的字段以及条件写入
必须匹配的守卫条件。持久化在 ``newsdesk.core.service`` 中完成。

状态（规范状态）::

    draft ──┐                   ┌── approve(auto_publish) ──────────► published
            ├── approve ────────┤                                        ▲
    pending ┘                   └── approve(schedule) ─► scheduled ──────┤
            │                                                (publish_now / sweep)
            └── reject ─────────────────────────────────► rejected (terminal)

存储的三个字段（``approval_status``、``status``、``is_published``）只是规范状态的
投影，推导与投影只在本模块进行。
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from newsdesk.core.clock import ensure_utc, isoformat
from newsdesk.core.errors import InvalidTransition, ValidationError
from newsdesk.models.article import Article

logger = logging.getLogger(__name__)

DEFAULT_SCHEDULE_DELAY = timedelta(minutes=30)


class ArticleState(str, Enum):
    """规范状态."""

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is ArticleState.REJECTED

    @property
    def awaiting_review(self) -> bool:
        return self in (ArticleState.DRAFT, ArticleState.PENDING)


class ApprovalStatus:
    """存储的 approval_status 取值."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


_PROJECTION: dict[ArticleState, dict[str, Any]] = {
    ArticleState.DRAFT: {
        "approval_status": ApprovalStatus.PENDING,
        "status": "draft",
        "is_published": False,
    },
    ArticleState.PENDING: {
        "approval_status": ApprovalStatus.PENDING,
        "status": "pending",
        "is_published": False,
    },
    ArticleState.APPROVED: {
        "approval_status": ApprovalStatus.APPROVED,
        "status": "pending",
        "is_published": False,
    },
    ArticleState.SCHEDULED: {
        "approval_status": ApprovalStatus.APPROVED,
        "status": "scheduled",
        "is_published": False,
    },
    ArticleState.PUBLISHED: {
        "approval_status": ApprovalStatus.APPROVED,
        "status": "published",
        "is_published": True,
    },
    ArticleState.REJECTED: {
        "approval_status": ApprovalStatus.REJECTED,
        "status": "rejected",
        "is_published": False,
    },
}


def project(state: ArticleState) -> dict[str, Any]:
    """规范状态 -> 存储字段."""
    return dict(_PROJECTION[state])


def derive_state(article: Article) -> ArticleState:
    """由存储字段推导规范状态."""
    if (
        article.approval_status == ApprovalStatus.REJECTED
        or article.status == "rejected"
    ):
        return ArticleState.REJECTED
    if article.is_published or article.status == "published":
        return ArticleState.PUBLISHED
    if article.status == "scheduled":
        return ArticleState.SCHEDULED
    if article.approval_status == ApprovalStatus.APPROVED:
        return ArticleState.APPROVED
    if article.status == "pending":
        return ArticleState.PENDING
    return ArticleState.DRAFT


# 事件


@dataclass(frozen=True)
class Approve:
    auto_publish: bool = False
    scheduled_publish_at: datetime | None = None
    default_delay: timedelta = DEFAULT_SCHEDULE_DELAY

    name = "approve"


@dataclass(frozen=True)
class Reject:
    name = "reject"


@dataclass(frozen=True)
class PublishNow:
    """手动发布；override 为 True 时不检查计划时间."""

    override: bool = True

    name = "publish_now"


@dataclass(frozen=True)
class SweepPublish:
    name = "sweep_publish"


LifecycleEvent = Approve | Reject | PublishNow | SweepPublish


@dataclass
class Transition:
    """状态变更结果."""

    article_id: str
    event: str
    from_state: ArticleState
    to_state: ArticleState
    fields: dict[str, Any] = field(default_factory=dict)
    expected: dict[str, Any] = field(default_factory=dict)
    noop: bool = False


def _guard(article: Article) -> dict[str, Any]:
    return {
        "approval_status": article.approval_status,
        "status": article.status,
        "is_published": article.is_published,
    }


def _advance(previous: datetime | None, now: datetime) -> datetime:
    """时间戳只前进不后退."""
    previous = ensure_utc(previous)
    if previous is not None and previous > now:
        return previous
    return now


def _reject_move(article: Article, state: ArticleState, event: str) -> InvalidTransition:
    return InvalidTransition(
        f"文章当前状态为 {state.value}，不允许执行 {event}",
        article_id=article.id,
        state=state.value,
        event=event,
    )


def apply_event(
    article: Article,
    event: LifecycleEvent,
    now: datetime,
) -> Transition:
    """计算事件作用于文章快照后的状态变更.

    Raises:
        InvalidTransition: 当前状态不允许该事件.
        ValidationError: 事件参数互相矛盾.
    """
    now = ensure_utc(now)
    state = derive_state(article)
    transition = Transition(
        article_id=article.id,
        event=event.name,
        from_state=state,
        to_state=state,
        expected=_guard(article),
    )

    if isinstance(event, Approve):
        if not state.awaiting_review:
            raise _reject_move(article, state, event.name)
        if event.auto_publish and event.scheduled_publish_at is not None:
            msg = "auto_publish 与 scheduled_publish_at 不能同时指定"
            raise ValidationError(msg, article_id=article.id)

        approved_at = _advance(article.approved_at, now)
        if event.auto_publish:
            transition.to_state = ArticleState.PUBLISHED
            transition.fields = {
                **project(ArticleState.PUBLISHED),
                "published_at": _advance(article.published_at, now),
                "approved_at": approved_at,
                "scheduled_publish_at": None,
            }
        else:
            scheduled_at = ensure_utc(event.scheduled_publish_at)
            if scheduled_at is None:
                scheduled_at = now + event.default_delay
            transition.to_state = ArticleState.SCHEDULED
            transition.fields = {
                **project(ArticleState.SCHEDULED),
                "scheduled_publish_at": scheduled_at,
                "approved_at": approved_at,
            }

    elif isinstance(event, Reject):
        if not state.awaiting_review:
            raise _reject_move(article, state, event.name)
        transition.to_state = ArticleState.REJECTED
        transition.fields = {
            **project(ArticleState.REJECTED),
            "scheduled_publish_at": None,
        }

    elif isinstance(event, PublishNow):
        if state not in (ArticleState.SCHEDULED, ArticleState.APPROVED):
            raise _reject_move(article, state, event.name)
        if not event.override and not _is_due(article, now):
            raise InvalidTransition(
                "未到计划发布时间",
                article_id=article.id,
                scheduled_publish_at=isoformat(article.scheduled_publish_at),
            )
        transition.to_state = ArticleState.PUBLISHED
        transition.fields = _publish_fields(article, now)

    elif isinstance(event, SweepPublish):
        if state is ArticleState.PUBLISHED:
            # 并发扫描可能同时命中同一行
            transition.noop = True
            return transition
        if state is not ArticleState.SCHEDULED:
            raise _reject_move(article, state, event.name)
        if not _is_due(article, now):
            raise InvalidTransition(
                "未到计划发布时间",
                article_id=article.id,
                scheduled_publish_at=isoformat(article.scheduled_publish_at),
            )
        transition.to_state = ArticleState.PUBLISHED
        transition.fields = _publish_fields(article, now)

    else:
        msg = f"未知事件: {event!r}"
        raise ValidationError(msg)

    transition.fields["updated_at"] = _advance(article.updated_at, now)
    logger.debug(
        f"状态变更 {article.id}: {state.value} -> {transition.to_state.value} "
        f"({event.name})"
    )
    return transition


def _is_due(article: Article, now: datetime) -> bool:
    scheduled_at = ensure_utc(article.scheduled_publish_at)
    return scheduled_at is not None and scheduled_at <= now


def _publish_fields(article: Article, now: datetime) -> dict[str, Any]:
    return {
        **project(ArticleState.PUBLISHED),
        "published_at": _advance(article.published_at, now),
        "scheduled_publish_at": None,
    }
