"""管理员登录 API."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from newsdesk.api.deps import client_identifier, get_login_limiter
from newsdesk.config import Settings, get_settings
from newsdesk.core.auth import LoginRateLimiter, check_credentials
from newsdesk.core.errors import Unauthorized, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    """登录请求."""

    email: str = ""
    password: str = ""


async def _read_login(request: Request) -> LoginRequest:
    """解析登录请求体.

    请求体在限流计数之后才读取，格式错误的请求同样占用尝试次数。
    """
    try:
        payload = await request.json()
    except ValueError:
        raise ValidationError("请求体必须是 JSON 对象") from None
    if not isinstance(payload, dict):
        raise ValidationError("请求体必须是 JSON 对象")
    try:
        return LoginRequest.model_validate(payload)
    except PydanticValidationError as e:
        fields = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ValidationError("请求参数无效", fields=fields) from None


@router.post(
    "/login",
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {"schema": LoginRequest.model_json_schema()}
            },
        }
    },
)
async def login(
    request: Request,
    client_id: str = Depends(client_identifier),
    limiter: LoginRateLimiter = Depends(get_login_limiter),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """用邮箱密码换取管理员 Token（按客户端限流）."""
    # 无论请求体和凭据是否有效都计数
    limiter.hit(client_id)
    body = await _read_login(request)

    if not settings.admin_token or not check_credentials(
        body.email, body.password, settings.admin_email, settings.admin_password
    ):
        logger.warning(f"登录失败: {client_id}")
        raise Unauthorized("邮箱或密码错误")

    logger.info(f"管理员登录成功: {client_id}")
    return {
        "success": True,
        "token": settings.admin_token,
        "user": {"email": body.email, "role": "admin"},
    }
