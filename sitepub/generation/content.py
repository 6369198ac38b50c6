"""Localized article generator."""

from datetime import date, datetime
from typing import Dict, List, Union

import pendulum
import yaml
from rich.console import Console

from ..errors import GenerationError, StorageError
from ..models import ContentItem, Lang
from ..storage import ContentStore
from .feed import FeedFetcher
from .llm_provider import LLMProvider
from .models import Announcement, ArticleDraft, PublishWindow

console = Console()

TEMPLATES: Dict[Lang, Dict[str, str]] = {
    Lang.EN: {
        "title": "AWS Updates {date}",
        "description": "{count} new announcements",
        "description_one": "1 new announcement",
        "description_none": "No new announcements today",
        "heading": "Announcements",
    },
    Lang.JA: {
        "title": "AWS アップデート {date}",
        "description": "{count} 件の新しいアナウンス",
        "description_one": "1 件の新しいアナウンス",
        "description_none": "本日の新しいアナウンスはありません",
        "heading": "アナウンス一覧",
    },
}


def publish_date_for(triggered_at: datetime, timezone: str) -> date:
    """Logical publish date of a run triggered at the given time."""
    return pendulum.instance(triggered_at).in_timezone(timezone).date()


def publish_window(publish_date: date, timezone: str) -> PublishWindow:
    """The day preceding the publish date, in the site timezone."""
    end = pendulum.datetime(publish_date.year, publish_date.month, publish_date.day, tz=timezone)
    return PublishWindow(start=end.subtract(days=1), end=end)


def article_slug(lang: Union[Lang, str], publish_date: date) -> str:
    """Language specific slug shared by the article and its thumbnail."""
    return f"{publish_date.isoformat()}.{Lang(lang).value}"


class ContentGenerator:
    """Generate one localized article per language and persist its body."""

    def __init__(
        self,
        store: ContentStore,
        fetcher: FeedFetcher,
        llm_provider: LLMProvider,
        content_path: str = "hugo/content/posts",
        timezone: str = "Asia/Tokyo",
        max_entries: int = 50,
    ) -> None:
        """
        Initialize content generator.

        Args:
            store: Content store receiving the markdown body
            fetcher: Source of announcements
            llm_provider: Provider used to translate non-English articles
            content_path: Key prefix of generated articles
            timezone: Timezone the publish date is expressed in
            max_entries: Maximum entries listed per article
        """
        self.store = store
        self.fetcher = fetcher
        self.llm_provider = llm_provider
        self.content_path = content_path.rstrip("/")
        self.timezone = timezone
        self.max_entries = max_entries

    def content_key(self, lang: Lang, publish_date: date) -> str:
        return f"{self.content_path}/{article_slug(lang, publish_date)}.md"

    def thumbnail_key(self, lang: Lang, publish_date: date) -> str:
        return f"{self.content_path}/{article_slug(lang, publish_date)}.png"

    def _draft(self, lang: Lang, publish_date: date, entries: List[Announcement]) -> ArticleDraft:
        templates = TEMPLATES[lang]
        count = len(entries)
        if count == 0:
            description = templates["description_none"]
        elif count == 1:
            description = templates["description_one"]
        else:
            description = templates["description"].format(count=count)

        if lang != Lang.EN and entries:
            titles = self.llm_provider.translate([e.title for e in entries], lang.value)
            entries = [e.model_copy(update={"title": t}) for e, t in zip(entries, titles)]

        return ArticleDraft(
            title=templates["title"].format(date=publish_date.strftime("%Y/%m/%d")),
            description=description,
            entries=entries,
        )

    def _render_markdown(
        self,
        lang: Lang,
        draft: ArticleDraft,
        window: PublishWindow,
        publish_date: date,
        is_draft: bool,
    ) -> str:
        front_matter = {
            "title": draft.title,
            "description": draft.description,
            "date": pendulum.instance(window.end).to_iso8601_string(),
            "draft": is_draft,
            "images": [f"{article_slug(lang, publish_date)}.png"],
            "pubDateRange": window.label(),
        }

        lines = ["---"]
        lines.append(yaml.safe_dump(front_matter, allow_unicode=True, sort_keys=False).rstrip())
        lines.append("---")
        lines.append("")
        lines.append(f"## {TEMPLATES[lang]['heading']}")
        lines.append("")
        if draft.entries:
            for entry in draft.entries:
                lines.append(f"- [{entry.title}]({entry.link})")
        else:
            lines.append(draft.description)
        lines.append("")
        return "\n".join(lines)

    def generate(self, lang: Union[Lang, str], is_draft: bool, publish_date: date) -> ContentItem:
        """
        Generate the article for one language and write its body to storage.

        Returns:
            Content item referencing the written body and a thumbnail key
            that has not been written yet

        Raises:
            GenerationError: If the source is unavailable or the content is invalid
        """
        try:
            lang = Lang(lang)
        except ValueError:
            raise GenerationError(f"Unsupported language: {lang}")

        window = publish_window(publish_date, self.timezone)
        entries = self.fetcher.fetch_window(window)[: self.max_entries]
        draft = self._draft(lang, publish_date, entries)

        try:
            item = ContentItem(
                lang=lang,
                title=draft.title,
                description=draft.description,
                pub_date_range=window.label(),
                publish_date=publish_date,
                is_draft=is_draft,
                content_key=self.content_key(lang, publish_date),
                thumbnail_key=self.thumbnail_key(lang, publish_date),
            )
        except ValueError as e:
            raise GenerationError(f"Invalid article content: {e}") from e

        markdown = self._render_markdown(lang, draft, window, publish_date, is_draft)
        try:
            self.store.put_text(item.content_key, markdown)
        except StorageError as e:
            raise GenerationError(f"Failed to store article body: {e.reason}") from e

        console.print(f"[green]✓[/green] Generated {lang.value} article: {item.content_key}")
        return item
