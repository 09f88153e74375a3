"""认证与登录限流.

- 管理接口：静态 Bearer Token，常数时间比较。
- 自动化接口：``x-automation-secret`` 共享密钥。
- 登录接口：按客户端地址的固定窗口限流（默认 5 分钟内 5 次）。

限流状态只保存在进程内存中；多实例部署时限制是按实例计算的。
"""

import hmac
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from newsdesk.core.clock import utc_now
from newsdesk.core.errors import RateLimited, Unauthorized

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


def secrets_match(provided: str | None, expected: str | None) -> bool:
    """常数时间比较；未配置的密钥永远不匹配."""
    if not expected or provided is None:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def extract_bearer(authorization: str | None) -> str | None:
    """从 Authorization 头中取出 Bearer Token."""
    if not authorization:
        return None
    if not authorization.lower().startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX) :].strip()
    return token or None


def check_admin_token(authorization: str | None, admin_token: str) -> None:
    """校验管理员 Token，失败抛出 Unauthorized."""
    if not admin_token:
        logger.warning("admin_token 未配置，拒绝所有管理请求")
    if not secrets_match(extract_bearer(authorization), admin_token):
        raise Unauthorized("未授权")


def check_automation_secret(provided: str | None, automation_secret: str) -> None:
    """校验自动化共享密钥，失败抛出 Unauthorized."""
    if not automation_secret:
        logger.warning("automation_secret 未配置，拒绝所有自动化请求")
    if not secrets_match(provided, automation_secret):
        raise Unauthorized("自动化密钥无效")


def check_credentials(
    email: str, password: str, admin_email: str, admin_password: str
) -> bool:
    """校验管理员邮箱与密码（两项都比较，避免短路泄露时序）."""
    email_ok = secrets_match(email.strip().lower(), admin_email.strip().lower())
    password_ok = secrets_match(password, admin_password)
    return email_ok and password_ok


@dataclass
class RateLimitBucket:
    """单个客户端的限流计数."""

    count: int
    window_reset_at: datetime


class LoginRateLimiter:
    """登录尝试限流器（进程内存）.

    每次尝试：无记录或窗口已过期 -> 重置为 1 并放行；计数已达上限 -> 拒绝；
    否则计数加一并放行。正确或错误的凭据都会计数。
    """

    def __init__(
        self,
        max_attempts: int = 5,
        window: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.max_attempts = max_attempts
        self.window = window
        self._clock = clock
        self._buckets: dict[str, RateLimitBucket] = {}
        self._lock = threading.Lock()

    def hit(self, client_id: str, now: datetime | None = None) -> RateLimitBucket:
        """记录一次尝试；超过限制时抛出 RateLimited."""
        now = now or self._clock()
        with self._lock:
            bucket = self._buckets.get(client_id)
            if bucket is None or now >= bucket.window_reset_at:
                bucket = RateLimitBucket(count=1, window_reset_at=now + self.window)
                self._buckets[client_id] = bucket
                return bucket

            if bucket.count >= self.max_attempts:
                retry_after = max(
                    1, int((bucket.window_reset_at - now).total_seconds() + 0.999)
                )
                logger.warning(f"登录尝试过于频繁: {client_id}")
                raise RateLimited(
                    "登录尝试过于频繁，请稍后再试",
                    retry_after=retry_after,
                )

            bucket.count += 1
            return bucket

    def purge_expired(self, now: datetime | None = None) -> int:
        """清理已过期的窗口，返回清理数量."""
        now = now or self._clock()
        with self._lock:
            expired = [
                key
                for key, bucket in self._buckets.items()
                if now >= bucket.window_reset_at
            ]
            for key in expired:
                del self._buckets[key]
        return len(expired)

    def reset(self) -> None:
        """清空所有计数."""
        with self._lock:
            self._buckets.clear()

    def __len__(self) -> int:
        return len(self._buckets)
