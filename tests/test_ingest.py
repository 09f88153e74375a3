"""测试自动化草稿接入与回调解析."""

import json
import logging
from datetime import timedelta

import pytest

from newsdesk.core.errors import UnsupportedOperation, ValidationError
from newsdesk.core.ingest import (
    CallbackCommand,
    CallbackOperation,
    build_draft_fields,
    ingest_draft,
    normalize_tags,
    parse_score,
)
from newsdesk.core.lifecycle import Approve, Reject


class TestBuildDraftFields:
    """测试草稿字段生成."""

    def test_minimal_payload(self, now) -> None:
        """最小载荷生成待审核草稿."""
        fields = build_draft_fields(
            {"title": "X", "summary": "Y", "original_url": "https://z"}, now
        )
        assert fields["title"] == "X"
        assert fields["auto_generated"] is True
        assert fields["approval_status"] == "pending"
        assert fields["status"] == "draft"
        assert fields["is_published"] is False
        assert fields["source"] == "AI Automation"
        assert fields["created_at"] == now

    def test_missing_fields_are_named(self, now) -> None:
        """缺失字段全部列出."""
        with pytest.raises(ValidationError) as exc_info:
            build_draft_fields({"title": "X", "summary": "  "}, now)
        assert exc_info.value.details["missing_fields"] == ["summary", "original_url"]

    def test_spoofed_status_is_ignored(self, now) -> None:
        """载荷中的状态字段不生效."""
        fields = build_draft_fields(
            {
                "title": "X",
                "summary": "Y",
                "original_url": "https://z",
                "approval_status": "approved",
                "status": "published",
                "is_published": True,
                "published_at": "2020-01-01T00:00:00Z",
            },
            now,
        )
        assert fields["approval_status"] == "pending"
        assert fields["status"] == "draft"
        assert fields["is_published"] is False
        assert fields["published_at"] is None

    def test_tags_and_score(self, now) -> None:
        """标签与评分写入."""
        fields = build_draft_fields(
            {
                "title": "X",
                "summary": "Y",
                "original_url": "https://z",
                "tags": ["llm", " ", "agents"],
                "validation_score": "8.5",
            },
            now,
        )
        assert json.loads(fields["tags"]) == ["llm", "agents"]
        assert fields["validation_score"] == 8.5

    def test_malformed_score_dropped_with_warning(self, now, caplog) -> None:
        """非数值评分被丢弃，不影响接入."""
        with caplog.at_level(logging.WARNING, logger="newsdesk.core.ingest"):
            fields = build_draft_fields(
                {
                    "title": "X",
                    "summary": "Y",
                    "original_url": "https://z",
                    "validation_score": "very good",
                },
                now,
            )
        assert fields["validation_score"] is None
        assert "validation_score" in caplog.text


class TestMetadataParsing:
    """测试可选元数据解析."""

    def test_tags_from_string(self) -> None:
        assert normalize_tags("a, b,,c ") == ["a", "b", "c"]

    def test_empty_tags(self) -> None:
        assert normalize_tags([]) is None
        assert normalize_tags(None) is None

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(7, 7.0), ("0.5", 0.5), (None, None), ("", None), ("nan", None), (True, None)],
    )
    def test_scores(self, raw, expected) -> None:
        assert parse_score(raw) == expected


class TestIngestDraft:
    """测试草稿入库."""

    async def test_inserts_draft(self, store) -> None:
        """草稿写入数据库."""
        article = await ingest_draft(
            store, {"title": "X", "summary": "Y", "original_url": "https://z"}
        )
        saved = await store.get(article.id)
        assert saved is not None
        assert saved.status == "draft"
        assert saved.auto_generated is True

    async def test_invalid_payload_inserts_nothing(self, store) -> None:
        """校验失败时不写入任何数据."""
        with pytest.raises(ValidationError):
            await ingest_draft(store, {"title": "X"})
        assert await store.count() == 0


class TestCallbackCommand:
    """测试回调命令解码."""

    def test_decode(self) -> None:
        command = CallbackCommand.decode({"callback": {"data": "action:reject:abc"}})
        assert command == CallbackCommand(CallbackOperation.REJECT, "abc")

    def test_article_id_may_contain_colons(self) -> None:
        """只按前两个冒号分割."""
        command = CallbackCommand.decode({"callback": {"data": "action:publish:a:b"}})
        assert command.article_id == "a:b"

    def test_unknown_operation(self) -> None:
        with pytest.raises(UnsupportedOperation):
            CallbackCommand.decode({"callback": {"data": "action:archive:abc"}})

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            {},
            {"callback": "action:reject:abc"},
            {"callback": {"data": ""}},
            {"callback": {"data": "reject:abc"}},
            {"callback": {"data": "cmd:reject:abc"}},
            {"callback": {"data": "action:reject:"}},
        ],
    )
    def test_malformed(self, payload) -> None:
        with pytest.raises(ValidationError):
            CallbackCommand.decode(payload)

    def test_events(self) -> None:
        """回调映射到固定的生命周期事件."""
        reject = CallbackCommand(CallbackOperation.REJECT, "a").to_event()
        schedule = CallbackCommand(CallbackOperation.SCHEDULE, "a").to_event()
        publish = CallbackCommand(CallbackOperation.PUBLISH, "a").to_event()

        assert isinstance(reject, Reject)
        assert schedule == Approve(auto_publish=False, default_delay=timedelta(hours=1))
        assert publish == Approve(auto_publish=True)
