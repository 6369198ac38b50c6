"""Shared fixtures: a temporary content store, sample items and fake pipeline stages.

Nothing here touches the network, Hugo or a CDN.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections import defaultdict
from datetime import date
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from sitepub.config import PipelineConfig
from sitepub.errors import GenerationError, RenderError
from sitepub.models import BuildArtifact, ContentItem, InvalidationAck, Lang
from sitepub.pipeline import MemoryRunArchive, PipelineOrchestrator
from sitepub.storage import LocalContentStore


# === FIXTURES: Storage ===


@pytest.fixture
def store(tmp_path: Path) -> LocalContentStore:
    """Local bucket seeded with a minimal site tree."""
    bucket = LocalContentStore(tmp_path / "bucket")
    bucket.put_text("hugo/config.yml", 'baseURL: "/"\ntitle: "Builder News"\n')
    bucket.put_text("hugo/content/posts/.keep", "")
    return bucket


# === FIXTURES: Sample data ===


@pytest.fixture
def sample_item() -> ContentItem:
    return ContentItem(
        lang=Lang.EN,
        title="AWS Updates 2024/05/14",
        description="12 new announcements",
        pub_date_range="2024/05/13 00:00 - 2024/05/14 00:00 (JST)",
        publish_date=date(2024, 5, 14),
        is_draft=False,
        content_key="hugo/content/posts/2024-05-14.en.md",
        thumbnail_key="hugo/content/posts/2024-05-14.en.png",
    )


# === FAKES: Pipeline stages ===


class FakeGenerator:
    """Writes a stub article per language.

    ``failures[lang]`` is the number of leading calls that raise;
    ``delays[lang]`` makes that language slow.
    """

    def __init__(self, store: LocalContentStore) -> None:
        self.store = store
        self.failures: Dict[Lang, int] = defaultdict(int)
        self.delays: Dict[Lang, float] = defaultdict(float)
        self.calls: List[Lang] = []
        self.finished: List[Lang] = []
        self._lock = threading.Lock()

    def generate(self, lang: Lang, is_draft: bool, publish_date: date) -> ContentItem:
        lang = Lang(lang)
        with self._lock:
            self.calls.append(lang)
            failing = self.failures[lang] > 0
            if failing:
                self.failures[lang] -= 1
        time.sleep(self.delays[lang])
        if failing:
            raise GenerationError(f"feed unavailable for {lang.value}")

        slug = f"{publish_date.isoformat()}.{lang.value}"
        item = ContentItem(
            lang=lang,
            title=f"Updates {publish_date.isoformat()}",
            description="3 new announcements",
            pub_date_range="range",
            publish_date=publish_date,
            is_draft=is_draft,
            content_key=f"hugo/content/posts/{slug}.md",
            thumbnail_key=f"hugo/content/posts/{slug}.png",
        )
        self.store.put_text(item.content_key, f"---\ndraft: {str(is_draft).lower()}\n---\n")
        with self._lock:
            self.finished.append(lang)
        return item


class FakeRenderer:
    def __init__(self, store: LocalContentStore) -> None:
        self.store = store
        self.failing: set = set()
        self.rendered: List[str] = []

    def render(self, item: ContentItem) -> bytes:
        if item.lang in self.failing:
            raise RenderError("font unavailable")
        self.store.put(item.thumbnail_key, b"\x89PNG")
        self.rendered.append(item.thumbnail_key)
        return b"\x89PNG"


class FakeBuilder:
    """Records builds and the content present when each build started."""

    def __init__(self, build_root: Path, store: LocalContentStore) -> None:
        self.build_root = build_root
        self.store = store
        self.succeed = True
        self.delay = 0.0
        self.calls: List[dict] = []

    @property
    def artifact_dir(self) -> Path:
        return self.build_root / "staticPages"

    async def build(self, source_root: Path, is_draft: bool, build_id: str) -> BuildArtifact:
        self.calls.append(
            {
                "source_root": Path(source_root),
                "is_draft": is_draft,
                "build_id": build_id,
                "content": self.store.list_keys("hugo/content/posts"),
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.succeed:
            self.artifact_dir.mkdir(parents=True, exist_ok=True)
            (self.artifact_dir / "index.html").write_text("<html></html>")
        return BuildArtifact(
            success=self.succeed,
            artifact_location=str(self.artifact_dir),
            log_ref=str(self.build_root / "logs" / f"{build_id}.log"),
            build_id=build_id,
            error=None if self.succeed else "Build tool exited with code 255",
        )


class FakeInvalidator:
    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.error: Optional[Exception] = None

    def invalidate(self, distribution_id: str, caller_reference: str) -> InvalidationAck:
        self.calls.append((distribution_id, caller_reference))
        if self.error is not None:
            raise self.error
        return InvalidationAck(distribution_id=distribution_id, invalidation_id=f"I{len(self.calls)}")


@pytest.fixture
def generator(store) -> FakeGenerator:
    return FakeGenerator(store)


@pytest.fixture
def renderer(store) -> FakeRenderer:
    return FakeRenderer(store)


@pytest.fixture
def builder(tmp_path, store) -> FakeBuilder:
    return FakeBuilder(tmp_path / "build", store)


@pytest.fixture
def invalidator() -> FakeInvalidator:
    return FakeInvalidator()


@pytest.fixture
def archive() -> MemoryRunArchive:
    return MemoryRunArchive()


@pytest.fixture
def make_orchestrator(generator, renderer, builder, invalidator, store, archive) -> Callable[..., PipelineOrchestrator]:
    """Factory for an orchestrator wired to the fakes; keyword arguments override."""

    def factory(**overrides) -> PipelineOrchestrator:
        kwargs = dict(
            generator=generator,
            renderer=renderer,
            builder=builder,
            invalidator=invalidator,
            store=store,
            archive=archive,
            policy=PipelineConfig(branch_attempts=2, branch_backoff=0.0, run_timeout=10.0),
            distribution_id="E2EXAMPLE",
        )
        kwargs.update(overrides)
        return PipelineOrchestrator(**kwargs)

    return factory


@pytest.fixture
def orchestrator(make_orchestrator) -> PipelineOrchestrator:
    return make_orchestrator()
