"""数据模型."""

from newsdesk.models.article import Article
from newsdesk.models.database import get_session, init_db

__all__ = [
    "Article",
    "get_session",
    "init_db",
]
