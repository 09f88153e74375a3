"""应用配置管理."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置（环境变量）."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # 管理员凭据
    admin_email: str = ""
    admin_password: str = ""
    admin_token: str = ""

    # 自动化系统（webhook / 机器人回调）共享密钥
    automation_secret: str = ""

    # 登录限流
    trust_proxy_headers: bool = False
    login_max_attempts: int = 5
    login_window_seconds: int = 300

    # 排期配置
    local_utc_offset_minutes: int = 330  # UTC+05:30
    approve_default_delay_minutes: int = 30
    callback_schedule_delay_minutes: int = 60

    # 定时发布
    sweep_enabled: bool = True
    sweep_interval_minutes: int = 1

    # 应用配置
    database_url: str = "sqlite+aiosqlite:///./newsdesk.db"
    store_timeout_seconds: float = 5.0
    cors_origins: list[str] = ["*"]


@lru_cache
def get_settings() -> Settings:
    """获取应用配置（带缓存）."""
    return Settings()
