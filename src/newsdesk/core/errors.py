"""错误类型定义.

所有业务错误都继承 NewsdeskError，由 main 中注册的异常处理器统一渲染为
``{"success": false, "error": ..., "code": ...}``。
"""

from typing import Any, ClassVar


class NewsdeskError(Exception):
    """业务错误基类."""

    code: ClassVar[str] = "INTERNAL_ERROR"
    status_code: ClassVar[int] = 500
    retryable: ClassVar[bool] = False

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """转换为响应体."""
        payload: dict[str, Any] = {
            "success": False,
            "error": self.message,
            "code": self.code,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(NewsdeskError):
    """输入缺失或格式错误."""

    code = "VALIDATION_ERROR"
    status_code = 400


class UnsupportedOperation(NewsdeskError):
    """回调中的未知操作."""

    code = "UNSUPPORTED_OPERATION"
    status_code = 400


class Unauthorized(NewsdeskError):
    """凭据或密钥缺失/不正确."""

    code = "UNAUTHORIZED"
    status_code = 401


class NotFound(NewsdeskError):
    """文章不存在."""

    code = "NOT_FOUND"
    status_code = 404


class InvalidTransition(NewsdeskError):
    """状态机拒绝该状态变更."""

    code = "INVALID_TRANSITION"
    status_code = 409


class Conflict(NewsdeskError):
    """并发写入竞争失败."""

    code = "CONFLICT"
    status_code = 409


class RateLimited(NewsdeskError):
    """登录尝试过于频繁."""

    code = "RATE_LIMITED"
    status_code = 429

    def __init__(self, message: str, retry_after: int, **details: Any) -> None:
        super().__init__(message, **details)
        self.retry_after = retry_after


class StoreUnavailable(NewsdeskError):
    """存储超时或不可用（唯一可重试的错误）."""

    code = "STORE_UNAVAILABLE"
    status_code = 503
    retryable = True
