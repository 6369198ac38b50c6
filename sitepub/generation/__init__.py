"""Localized content generation."""

from .content import ContentGenerator, article_slug, publish_date_for, publish_window
from .feed import FeedFetcher
from .llm_provider import LLMProvider, MockLLMProvider, OpenAIProvider, create_llm_provider
from .models import Announcement, ArticleDraft, PublishWindow

__all__ = [
    "Announcement",
    "ArticleDraft",
    "ContentGenerator",
    "FeedFetcher",
    "LLMProvider",
    "MockLLMProvider",
    "OpenAIProvider",
    "PublishWindow",
    "article_slug",
    "create_llm_provider",
    "publish_date_for",
    "publish_window",
]
