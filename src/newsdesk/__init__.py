"""Newsdesk - AI 新闻发布流水线."""

__version__ = "0.1.0"
