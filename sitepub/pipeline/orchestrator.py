"""Pipeline orchestrator that runs the publishing state machine."""

import asyncio
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import date
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..build import HugoBinaryCache, SiteBuilder
from ..cdn import CacheInvalidator, create_invalidator
from ..config import Config, PipelineConfig
from ..errors import GenerationError, InvalidationError, PublishError, RenderError
from ..generation import ContentGenerator, FeedFetcher, create_llm_provider, publish_date_for
from ..models import (
    BranchFailure,
    BranchResult,
    BuildArtifact,
    Lang,
    RunRecord,
    RunRequest,
    RunStatus,
)
from ..storage import ContentStore, create_store
from ..thumbnail import ThumbnailRenderer
from .archive import RunArchive, create_archive
from .registry import RunRegistry

console = Console()

LANGUAGES = (Lang.EN, Lang.JA)

# Stage blamed when a run dies unexpectedly in a given state
STAGE_OF = {
    RunStatus.PENDING: "start",
    RunStatus.RUNNING: "branches",
    RunStatus.JOINED: "build",
    RunStatus.BUILDING: "build",
    RunStatus.INVALIDATING: "invalidate",
}


class PipelineOrchestrator:
    """Drives runs through branches, join, build and invalidation."""

    def __init__(
        self,
        generator: ContentGenerator,
        renderer: ThumbnailRenderer,
        builder: SiteBuilder,
        invalidator: CacheInvalidator,
        store: ContentStore,
        archive: RunArchive,
        policy: Optional[PipelineConfig] = None,
        site_path: str = "hugo",
        distribution_id: Optional[str] = None,
        timezone: str = "Asia/Tokyo",
        publish_prefix: Optional[str] = None,
        registry: Optional[RunRegistry] = None,
    ) -> None:
        """
        Initialize pipeline orchestrator.

        Args:
            generator: Content generator used by each branch
            renderer: Thumbnail renderer used by each branch
            builder: Static site builder
            invalidator: CDN invalidator
            store: Content store holding the site tree
            archive: Destination of terminal run records
            policy: Retry and timeout policy
            site_path: Key prefix of the site source tree in the store
            distribution_id: CDN distribution to invalidate
            timezone: Timezone used to derive the publish date
            publish_prefix: Store prefix the artifact is uploaded to, if any
            registry: Registry of in-flight runs
        """
        self.generator = generator
        self.renderer = renderer
        self.builder = builder
        self.invalidator = invalidator
        self.store = store
        self.archive = archive
        self.policy = policy or PipelineConfig()
        self.site_path = site_path
        self.distribution_id = distribution_id or ""
        self.timezone = timezone
        self.publish_prefix = publish_prefix
        self.registry = registry or RunRegistry()
        self._tasks: Dict[str, asyncio.Task] = {}
        # Stage work runs in threads that outlive a timed-out run
        self._executor = ThreadPoolExecutor(thread_name_prefix="sitepub-stage")
        self._workers: Set[Future] = set()
        self._workers_lock = threading.Lock()
        self._releases: Set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, config: Config) -> "PipelineOrchestrator":
        """Wire the orchestrator and its collaborators from configuration."""
        cfg = config.config
        if cfg.cdn.provider == "cloudfront" and not cfg.cdn.distribution_id:
            raise ValueError("cdn.distribution_id is required for the cloudfront provider")

        store = create_store(config)
        generator = ContentGenerator(
            store=store,
            fetcher=FeedFetcher(cfg.feed.url, timeout=cfg.feed.timeout),
            llm_provider=create_llm_provider(config.get_llm_config()),
            content_path=cfg.storage.content_path,
            timezone=cfg.site.timezone,
            max_entries=cfg.feed.max_entries,
        )
        renderer = ThumbnailRenderer(
            store,
            latin_font=cfg.fonts.latin,
            cjk_font=cfg.fonts.cjk,
            site_name=cfg.site.site_name,
        )

        binary_cache = None
        if not cfg.hugo.binary_path:
            binary_cache = HugoBinaryCache(
                config.cache_dir,
                version=cfg.hugo.version,
                url_template=cfg.hugo.binary_url,
                sha256=cfg.hugo.sha256,
            )
        builder = SiteBuilder(
            build_root=config.build_root,
            site=cfg.site,
            binary_cache=binary_cache,
            binary_path=Path(cfg.hugo.binary_path).expanduser() if cfg.hugo.binary_path else None,
            artifact_name=cfg.hugo.artifact_name,
            timeout=cfg.hugo.timeout,
        )

        # Remote stores serve the artifact from the bucket, as the build ran locally
        publish_prefix = None
        if cfg.storage.backend == "s3":
            publish_prefix = f"artifacts/{cfg.hugo.artifact_name}"

        return cls(
            generator=generator,
            renderer=renderer,
            builder=builder,
            invalidator=create_invalidator(cfg.cdn.provider, wait=cfg.cdn.wait),
            store=store,
            archive=create_archive(config),
            policy=cfg.pipeline,
            site_path=cfg.storage.site_path,
            distribution_id=cfg.cdn.distribution_id,
            timezone=cfg.site.timezone,
            publish_prefix=publish_prefix,
        )

    # --- Run lifecycle ---

    def submit(self, request: RunRequest) -> RunRecord:
        """
        Accept a request and start its run in the background.

        Must be called from a running event loop.

        Raises:
            RunRejectedError: If another run is in flight
        """
        record = self.registry.open(request)
        console.print(
            f"[bold blue]Run {record.id[:8]} accepted[/bold blue] "
            f"({request.source}, draft={request.is_draft}, build_only={request.build_only})"
        )
        self._tasks[record.id] = asyncio.create_task(self._run(record))
        return record

    async def wait(self, run_id: str) -> RunRecord:
        """Wait for a submitted run to reach its terminal state."""
        task = self._tasks.get(run_id)
        if task is None:
            raise KeyError(f"Unknown run: {run_id}")
        try:
            return await task
        finally:
            self._tasks.pop(run_id, None)

    async def start(self, request: RunRequest) -> RunRecord:
        """Run one request to completion and return its terminal record."""
        record = self.submit(request)
        return await self.wait(record.id)

    async def drain(self) -> List[RunRecord]:
        """Wait for every in-flight run and for the slots they still hold."""
        tasks = dict(self._tasks)
        try:
            records = list(await asyncio.gather(*tasks.values()))
        finally:
            for run_id, task in tasks.items():
                if task.done():
                    self._tasks.pop(run_id, None)
        if self._releases:
            await asyncio.gather(*list(self._releases))
        return records

    async def _offload(self, func: Callable, *args):
        """Run blocking stage work in a thread tracked until it finishes."""
        worker = self._executor.submit(func, *args)
        with self._workers_lock:
            self._workers.add(worker)
        worker.add_done_callback(self._forget_worker)
        return await asyncio.wrap_future(worker)

    def _forget_worker(self, worker: Future) -> None:
        with self._workers_lock:
            self._workers.discard(worker)

    def _release(self, record: RunRecord) -> None:
        """Close the run's registry slot once no stage thread is still writing."""
        with self._workers_lock:
            pending = [w for w in self._workers if not w.done()]
        if not pending:
            self.registry.close(record)
            return

        console.print(
            f"[yellow]Run {record.id[:8]} holds its slot until "
            f"{len(pending)} stage worker(s) finish[/yellow]"
        )
        task = asyncio.create_task(self._close_after(record, pending))
        self._releases.add(task)
        task.add_done_callback(self._releases.discard)

    async def _close_after(self, record: RunRecord, pending: List[Future]) -> None:
        try:
            await asyncio.wait([asyncio.wrap_future(w) for w in pending])
        finally:
            self.registry.close(record)
            console.print(f"[dim]Run {record.id[:8]} released[/dim]")

    async def _run(self, record: RunRecord) -> RunRecord:
        try:
            await asyncio.wait_for(self._execute(record), timeout=self.policy.run_timeout)
        except asyncio.TimeoutError:
            if not record.status.is_terminal:
                record.fail(
                    "timeout",
                    f"Run exceeded {self.policy.run_timeout:.0f}s while {record.status.value}",
                )
        except Exception as e:
            if not record.status.is_terminal:
                record.fail(STAGE_OF[record.status], f"Unexpected error: {type(e).__name__}: {e}")
        finally:
            if not record.status.is_terminal:
                record.fail("cancelled", f"Run cancelled while {record.status.value}")
            self._release(record)
            self._archive(record)
            self._print_summary(record)
        return record

    def _archive(self, record: RunRecord) -> None:
        try:
            self.archive.save(record)
        except Exception as e:
            # The run outcome stands; only its bookkeeping copy is missing
            console.print(f"[red]Failed to archive run {record.id}: {e}[/red]")

    async def _execute(self, record: RunRecord) -> None:
        request = record.request

        if request.build_only:
            record.transition(RunStatus.JOINED)
        else:
            record.transition(RunStatus.RUNNING)
            publish_date = publish_date_for(request.triggered_at, self.timezone)
            for result in await self.run_branches(request, publish_date):
                record.record_branch(result)
            record.transition(RunStatus.JOINED)

        # The build always runs: it rebuilds the whole site, not just this run's items
        record.transition(RunStatus.BUILDING)
        artifact = await self._build(record)
        record.build_artifact = artifact
        if not artifact.success:
            record.fail("build", artifact.error or "Build failed")
            return

        record.transition(RunStatus.INVALIDATING)
        try:
            record.invalidation = await self._offload(
                self.invalidator.invalidate, self.distribution_id, record.id
            )
        except InvalidationError as e:
            record.fail("invalidate", e.reason)
            return
        except Exception as e:
            record.fail("invalidate", f"{type(e).__name__}: {e}")
            return

        record.transition(RunStatus.SUCCEEDED)

    # --- Branches ---

    async def run_branches(self, request: RunRequest, publish_date: date) -> List[BranchResult]:
        """Run one branch per language concurrently and wait for all of them."""
        return list(
            await asyncio.gather(
                *(self.run_branch(lang, request.is_draft, publish_date) for lang in LANGUAGES)
            )
        )

    async def run_branch(self, lang: Lang, is_draft: bool, publish_date: date) -> BranchResult:
        """Generate then render one language, retrying the whole branch with backoff.

        Never raises: every outcome is returned as a BranchResult.
        """
        attempts = self.policy.branch_attempts
        delay = self.policy.branch_backoff
        stage = "generate"
        cause = ""

        for attempt in range(1, attempts + 1):
            stage = "generate"
            try:
                item = await self._offload(self.generator.generate, lang, is_draft, publish_date)
                stage = "render"
                await self._offload(self.renderer.render, item)
                return BranchResult(lang=lang, item=item)
            except (GenerationError, RenderError) as e:
                cause = e.reason
            except Exception as e:
                cause = f"{type(e).__name__}: {e}"

            console.print(
                f"[yellow]Branch {lang.value} failed in {stage} "
                f"(attempt {attempt}/{attempts}): {cause}[/yellow]"
            )
            if attempt < attempts:
                await asyncio.sleep(delay)
                delay *= 2

        return BranchResult(
            lang=lang,
            failure=BranchFailure(lang=lang, stage=stage, cause=cause, attempts=attempts),
        )

    # --- Build ---

    async def _build(self, record: RunRecord) -> BuildArtifact:
        try:
            source_root = await self._offload(self.store.materialize, self.site_path)
        except PublishError as e:
            return BuildArtifact(
                success=False,
                artifact_location=str(self.builder.artifact_dir),
                build_id=record.id,
                error=f"Site sources unavailable: {e.reason}",
            )

        artifact = await self.builder.build(source_root, record.request.is_draft, record.id)
        if not artifact.success or self.publish_prefix is None:
            return artifact

        try:
            count = await self._offload(
                self.store.put_tree, Path(artifact.artifact_location), self.publish_prefix
            )
        except PublishError as e:
            return artifact.model_copy(
                update={"success": False, "error": f"Failed to publish artifact: {e.reason}"}
            )

        console.print(f"[green]✓[/green] Published {count} files to {self.publish_prefix}")
        return artifact.model_copy(update={"artifact_location": self.publish_prefix})

    # --- Reporting ---

    def _print_summary(self, record: RunRecord) -> None:
        """Print run execution summary."""
        table = Table(title=f"Run {record.id[:8]}")
        table.add_column("Stage", style="cyan")
        table.add_column("Status", style="bold")
        table.add_column("Details", style="dim")

        for lang in LANGUAGES:
            result = record.branch_results.get(lang)
            if result is None:
                table.add_row(f"Branch {lang.value}", "-", "skipped")
            elif result.success:
                table.add_row(f"Branch {lang.value}", "[green]✓[/green]", result.item.content_key)
            else:
                table.add_row(
                    f"Branch {lang.value}",
                    "[red]✗[/red]",
                    f"{result.failure.stage}: {result.failure.cause}",
                )

        artifact = record.build_artifact
        if artifact is None:
            table.add_row("Build", "-", "not run")
        elif artifact.success:
            table.add_row("Build", "[green]✓[/green]", f"{artifact.duration:.1f}s → {artifact.artifact_location}")
        else:
            table.add_row("Build", "[red]✗[/red]", f"{artifact.error} (log: {artifact.log_ref})")

        if record.invalidation is not None:
            table.add_row("Invalidate", "[green]✓[/green]", f"{record.invalidation.invalidation_id} {record.invalidation.status}")
        elif record.failed_stage == "invalidate":
            table.add_row("Invalidate", "[red]✗[/red]", record.causes[-1])
        else:
            table.add_row("Invalidate", "-", "not run")

        console.print(table)

        if record.status == RunStatus.SUCCEEDED:
            warnings = ""
            if record.branch_failures:
                warnings = f"\n[yellow]{len(record.branch_failures)} branch(es) failed; see causes[/yellow]"
            console.print(Panel(
                f"[green]✅ Run succeeded[/green]\n\n"
                f"Run id: {record.id}\n"
                f"Duration: {record.duration:.1f} seconds{warnings}",
                style="green",
            ))
        else:
            causes = "\n".join(f"• {c}" for c in record.causes)
            console.print(Panel(
                f"[red]❌ Run failed in {record.failed_stage}[/red]\n\n"
                f"Run id: {record.id}\n"
                f"Duration: {record.duration:.1f} seconds\n"
                f"{causes}",
                style="red",
            ))
