"""Newsdesk 主应用入口."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from newsdesk.api import articles, auth, ingest, sweep
from newsdesk.config import get_settings
from newsdesk.core.auth import LoginRateLimiter
from newsdesk.core.clock import utc_now
from newsdesk.core.errors import NewsdeskError, RateLimited
from newsdesk.models.database import close_db, init_db
from newsdesk.scheduler import create_scheduler, shutdown_scheduler

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

_HTTP_CODES = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "RATE_LIMITED",
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """应用生命周期管理."""
    app_settings = get_settings()

    # 启动时初始化
    logger.info("正在初始化数据库...")
    await init_db(app_settings.database_url)

    logger.info("正在启动定时任务...")
    create_scheduler(app_settings, app.state.login_limiter)

    logger.info("Newsdesk 启动完成！")
    yield

    # 关闭时清理
    logger.info("正在关闭...")
    await shutdown_scheduler()
    await close_db()
    logger.info("Newsdesk 已关闭")


app = FastAPI(
    title="Newsdesk",
    description="AI 新闻发布流水线 - 审核、排期与定时发布",
    version="0.1.0",
    lifespan=lifespan,
)

_settings = get_settings()

# 登录限流器：每个进程一个实例，通过依赖注入使用
app.state.login_limiter = LoginRateLimiter(
    max_attempts=_settings.login_max_attempts,
    window=timedelta(seconds=_settings.login_window_seconds),
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NewsdeskError)
async def newsdesk_error_handler(request: Request, exc: NewsdeskError) -> JSONResponse:
    """业务错误统一响应."""
    headers = None
    if isinstance(exc, RateLimited):
        headers = {"Retry-After": str(exc.retry_after)}
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: [{exc.code}] {exc.message}")
    return JSONResponse(
        status_code=exc.status_code, content=exc.to_dict(), headers=headers
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """请求体校验失败统一为 400."""
    fields = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "请求参数无效",
            "code": "VALIDATION_ERROR",
            "details": {"fields": fields},
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """框架级 HTTP 错误（路由不存在等）."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": str(exc.detail),
            "code": _HTTP_CODES.get(exc.status_code, "HTTP_ERROR"),
        },
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """未预期的异常."""
    logger.exception(f"{request.method} {request.url.path} 处理失败: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "服务器内部错误", "code": "INTERNAL_ERROR"},
    )


# 注册路由（公开路由在前，避免被 /articles/{article_id} 匹配）
app.include_router(articles.public_router)
app.include_router(articles.router)
app.include_router(ingest.router)
app.include_router(sweep.router)
app.include_router(auth.router)


@app.get("/")
async def root() -> dict:
    """根路径."""
    return {
        "name": "Newsdesk",
        "version": "0.1.0",
        "description": "AI 新闻发布流水线",
    }


@app.get("/health")
async def health() -> dict:
    """健康检查."""
    return {"status": "ok", "timestamp": utc_now().isoformat()}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "newsdesk.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
