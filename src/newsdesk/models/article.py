"""Article 文章模型."""

from datetime import datetime
from uuid import uuid4

from sqlmodel import Field, SQLModel


def _new_id() -> str:
    return uuid4().hex


class Article(SQLModel, table=True):
    """AI 新闻文章."""

    __tablename__ = "articles"  # type: ignore[assignment]

    id: str = Field(default_factory=_new_id, primary_key=True)
    title: str = Field(description="标题")
    summary: str = Field(description="摘要")
    original_url: str = Field(description="原文链接")
    source: str | None = Field(default=None, description="来源名称")
    category: str | None = Field(default=None, description="分类")
    image_url: str | None = Field(default=None, description="配图链接")
    tags: str | None = Field(default=None, description="标签 (JSON 数组)")
    validation_score: float | None = Field(default=None, description="自动化校验评分")

    # 工作流字段，只由生命周期引擎写入
    approval_status: str = Field(
        default="pending", index=True, description="审核状态: pending|approved|rejected"
    )
    status: str = Field(
        default="draft",
        index=True,
        description="生命周期阶段: draft|pending|scheduled|published|rejected",
    )
    is_published: bool = Field(default=False, index=True, description="读者是否可见")
    auto_generated: bool = Field(default=False, description="是否由自动化系统生成")
    scheduled_publish_at: datetime | None = Field(
        default=None, index=True, description="计划发布时间 (UTC)"
    )
    published_at: datetime | None = Field(default=None, description="发布时间 (UTC)")
    approved_at: datetime | None = Field(default=None, description="审核通过时间 (UTC)")
    created_at: datetime | None = Field(default=None, description="创建时间 (UTC)")
    updated_at: datetime | None = Field(default=None, description="更新时间 (UTC)")
