"""Localized content models."""

from datetime import date
from enum import Enum

from pydantic import Field, field_validator

from .base import RecordModel


class Lang(str, Enum):
    """Languages the site is published in."""

    EN = "en"
    JA = "ja"


class ContentItem(RecordModel):
    """One localized article and the storage keys it occupies."""

    lang: Lang = Field(..., description="Article language")
    title: str = Field(..., description="Article title")
    description: str = Field(..., description="Short article description")
    pub_date_range: str = Field(..., description="Human readable window the article covers")
    publish_date: date = Field(..., description="Logical publish date")
    is_draft: bool = Field(False, description="Whether the article is a draft")
    content_key: str = Field(..., description="Storage key of the markdown body")
    thumbnail_key: str = Field(..., description="Storage key of the rendered thumbnail")

    @field_validator("title", "description")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Reject blank title or description."""
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v
