"""核心业务逻辑."""

from newsdesk.core.auth import LoginRateLimiter
from newsdesk.core.lifecycle import ArticleState, apply_event
from newsdesk.core.service import ArticleService
from newsdesk.core.store import ArticleStore
from newsdesk.core.sweep import run_sweep

__all__ = [
    "ArticleService",
    "ArticleState",
    "ArticleStore",
    "LoginRateLimiter",
    "apply_event",
    "run_sweep",
]
