"""Data models for content generation."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class Announcement(BaseModel):
    """One entry of the announcement feed."""

    title: str = Field(..., description="Entry title")
    link: str = Field(..., description="Entry URL")
    published: Optional[datetime] = Field(None, description="Publication date")
    summary: Optional[str] = Field(None, description="Entry summary")


class PublishWindow(BaseModel):
    """Time range an article covers."""

    start: datetime = Field(..., description="Inclusive start")
    end: datetime = Field(..., description="Exclusive end")

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    def label(self) -> str:
        """Range printed on the article and its thumbnail."""
        return f"{self.start.strftime('%Y/%m/%d %H:%M')} - {self.end.strftime('%Y/%m/%d %H:%M')} ({self.start.strftime('%Z')})"


class ArticleDraft(BaseModel):
    """Article content before it is rendered to markdown."""

    title: str
    description: str
    entries: List[Announcement] = Field(default_factory=list)
