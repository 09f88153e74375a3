"""时间与时区转换.

存储层统一使用 UTC；面向编辑的排期时间使用固定本地时区（默认 UTC+05:30）。
"""

from datetime import UTC, datetime, timedelta, timezone

DEFAULT_OFFSET_MINUTES = 330


def local_zone(offset_minutes: int = DEFAULT_OFFSET_MINUTES) -> timezone:
    """返回固定偏移的本地时区."""
    return timezone(timedelta(minutes=offset_minutes))


def utc_now() -> datetime:
    """当前 UTC 时间（带时区）."""
    return datetime.now(UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """规范化为带时区的 UTC 时间.

    SQLite 读回的时间没有 tzinfo，按 UTC 解释。
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def local_to_utc(
    value: datetime, offset_minutes: int = DEFAULT_OFFSET_MINUTES
) -> datetime:
    """把本地挂钟时间转换为 UTC.

    已带时区的时间直接转换，不再套用本地偏移。
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=local_zone(offset_minutes))
    return value.astimezone(UTC)


def utc_to_local(
    value: datetime | None, offset_minutes: int = DEFAULT_OFFSET_MINUTES
) -> datetime | None:
    """把 UTC 时间转换为本地时间."""
    value = ensure_utc(value)
    if value is None:
        return None
    return value.astimezone(local_zone(offset_minutes))


def parse_timestamp(
    raw: str, offset_minutes: int = DEFAULT_OFFSET_MINUTES
) -> datetime:
    """解析 ISO8601 字符串为 UTC 时间.

    无偏移量的输入视为本地挂钟时间。格式错误抛出 ValueError。
    """
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return local_to_utc(datetime.fromisoformat(text), offset_minutes)


def isoformat(value: datetime | None) -> str | None:
    """格式化为 ISO8601 字符串."""
    value = ensure_utc(value)
    return value.isoformat() if value else None
