"""Announcement feed fetcher."""

import calendar
from typing import List

import feedparser
import httpx
import pendulum
from rich.console import Console

from ..errors import GenerationError
from .models import Announcement, PublishWindow

console = Console()


class FeedFetcher:
    """Fetch and parse the announcement RSS feed."""

    def __init__(self, url: str, timeout: float = 30.0, client: httpx.Client = None) -> None:
        """Initialize feed fetcher."""
        self.url = url
        self.timeout = timeout
        self._client = client

    def _get(self) -> str:
        if self._client is not None:
            response = self._client.get(self.url)
            response.raise_for_status()
            return response.text

        with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
            response = client.get(self.url)
            response.raise_for_status()
            return response.text

    def fetch(self) -> List[Announcement]:
        """Fetch all entries of the feed."""
        try:
            text = self._get()
        except httpx.HTTPError as e:
            raise GenerationError(f"Feed unavailable: {e}") from e

        feed = feedparser.parse(text)
        if feed.bozo and not feed.entries:
            raise GenerationError(f"Invalid RSS feed: {feed.bozo_exception}")

        items = []
        for entry in feed.entries:
            published = None
            parsed = entry.get("published_parsed") or entry.get("updated_parsed")
            if parsed:
                # feedparser normalizes to UTC struct_time
                published = pendulum.from_timestamp(calendar.timegm(parsed), tz="UTC")

            title = (entry.get("title") or "").strip()
            link = entry.get("link") or ""
            if not title or not link:
                continue

            items.append(
                Announcement(
                    title=title,
                    link=link,
                    published=published,
                    summary=entry.get("summary"),
                )
            )
        return items

    def fetch_window(self, window: PublishWindow) -> List[Announcement]:
        """Fetch entries published inside the window, oldest first."""
        items = [i for i in self.fetch() if i.published and window.contains(i.published)]
        items.sort(key=lambda i: i.published)
        console.print(f"[dim]Feed: {len(items)} entries in {window.label()}[/dim]")
        return items
