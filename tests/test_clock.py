"""测试时区转换."""

from datetime import UTC, datetime, timedelta

import pytest

from newsdesk.core.clock import (
    ensure_utc,
    local_to_utc,
    parse_timestamp,
    utc_to_local,
)


class TestLocalConversion:
    """测试本地时区（UTC+05:30）与 UTC 互转."""

    def test_local_wall_clock_to_utc(self) -> None:
        """本地 10:00 对应 UTC 04:30."""
        result = local_to_utc(datetime(2025, 1, 1, 10, 0))
        assert result == datetime(2025, 1, 1, 4, 30, tzinfo=UTC)

    def test_aware_input_keeps_its_offset(self) -> None:
        """已带时区的输入不再套用本地偏移."""
        value = datetime(2025, 1, 1, 10, 0, tzinfo=UTC)
        assert local_to_utc(value) == value

    def test_utc_to_local(self) -> None:
        """UTC 23:00 对应本地次日 04:30."""
        local = utc_to_local(datetime(2025, 1, 1, 23, 0, tzinfo=UTC))
        assert local is not None
        assert (local.day, local.hour, local.minute) == (2, 4, 30)
        assert local.utcoffset() == timedelta(hours=5, minutes=30)

    def test_custom_offset(self) -> None:
        """偏移量可配置."""
        result = local_to_utc(datetime(2025, 1, 1, 10, 0), offset_minutes=-300)
        assert result == datetime(2025, 1, 1, 15, 0, tzinfo=UTC)


class TestParseTimestamp:
    """测试 ISO8601 解析."""

    def test_z_suffix_is_utc(self) -> None:
        """Z 后缀按 UTC 解析."""
        assert parse_timestamp("2025-01-01T10:00:00Z") == datetime(
            2025, 1, 1, 10, 0, tzinfo=UTC
        )

    def test_explicit_offset(self) -> None:
        """显式偏移量转换为 UTC."""
        assert parse_timestamp("2025-01-01T10:00:00+05:30") == datetime(
            2025, 1, 1, 4, 30, tzinfo=UTC
        )

    def test_naive_is_local(self) -> None:
        """无偏移量时视为本地挂钟时间."""
        assert parse_timestamp("2025-01-01T10:00") == datetime(
            2025, 1, 1, 4, 30, tzinfo=UTC
        )

    def test_invalid(self) -> None:
        """格式错误抛出 ValueError."""
        with pytest.raises(ValueError):
            parse_timestamp("tomorrow at noon")


class TestStorageFormat:
    """测试存储格式转换."""

    def test_ensure_utc_treats_naive_as_utc(self) -> None:
        """无时区时间按 UTC 解释."""
        assert ensure_utc(datetime(2025, 1, 1, 10, 0)) == datetime(
            2025, 1, 1, 10, 0, tzinfo=UTC
        )

    def test_ensure_utc_none(self) -> None:
        """None 原样返回."""
        assert ensure_utc(None) is None

    def test_ensure_utc_converts_offsets(self) -> None:
        """带其他偏移的时间转换为 UTC."""
        local = utc_to_local(datetime(2025, 1, 1, 10, 0, tzinfo=UTC))
        assert local is not None
        converted = ensure_utc(local)
        assert converted == datetime(2025, 1, 1, 10, 0, tzinfo=UTC)
        assert converted.utcoffset() == timedelta(0)
