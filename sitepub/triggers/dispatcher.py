"""Trigger dispatcher delivering run requests to the orchestrator."""

import asyncio
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Optional, Set

from rich.console import Console
from rich.panel import Panel

from ..errors import PublishError, RunRejectedError, TriggerDeliveryError
from ..models import RunRecord, RunRequest
from ..models.run import utcnow
from ..pipeline import PipelineOrchestrator
from .change import ConfigChangeTrigger
from .schedule import ScheduleTrigger, seconds_until

console = Console()


class TriggerDispatcher:
    """Turn schedule firings and config changes into orchestrator runs."""

    def __init__(
        self,
        orchestrator: PipelineOrchestrator,
        schedule: ScheduleTrigger,
        config_trigger: Optional[ConfigChangeTrigger] = None,
        retry_attempts: int = 3,
        retry_backoff: float = 30.0,
        max_event_age: float = 3600.0,
        poll_interval: float = 60.0,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize dispatcher.

        Args:
            orchestrator: Orchestrator receiving the requests
            schedule: Published and draft cadences
            config_trigger: Change detection on the site configuration
            retry_attempts: Delivery retries after the first attempt
            retry_backoff: Initial delay between delivery attempts, doubled each retry
            max_event_age: Requests older than this many seconds are dropped
            poll_interval: Seconds between config change polls
            clock: Source of the current time
            sleep: Coroutine used to wait between attempts
        """
        self.orchestrator = orchestrator
        self.schedule = schedule
        self.config_trigger = config_trigger
        self.retry_attempts = retry_attempts
        self.retry_backoff = retry_backoff
        self.max_event_age = max_event_age
        self.poll_interval = poll_interval
        self.clock = clock
        self.sleep = sleep
        self.dropped: List[TriggerDeliveryError] = []
        self.completed: List[RunRecord] = []

    @classmethod
    def from_config(cls, config, orchestrator: PipelineOrchestrator) -> "TriggerDispatcher":
        """Build a dispatcher from a Config manager."""
        cfg = config.config
        return cls(
            orchestrator=orchestrator,
            schedule=ScheduleTrigger.from_config(cfg.triggers),
            config_trigger=ConfigChangeTrigger(orchestrator.store, cfg.storage.config_key),
            retry_attempts=cfg.triggers.retry_attempts,
            retry_backoff=cfg.triggers.retry_backoff,
            max_event_age=cfg.triggers.max_event_age,
            poll_interval=cfg.triggers.config_poll_interval,
        )

    async def deliver(self, request: RunRequest) -> RunRecord:
        """
        Submit a request, retrying while the orchestrator refuses it.

        Raises:
            TriggerDeliveryError: When retries are exhausted or the request aged out
        """
        attempts = 0
        delay = self.retry_backoff

        while True:
            age = request.age(self.clock())
            if age >= self.max_event_age:
                raise TriggerDeliveryError(
                    f"{request.source} trigger expired after {age:.0f}s ({attempts} attempts)",
                    attempts=attempts,
                )

            attempts += 1
            try:
                return self.orchestrator.submit(request)
            except RunRejectedError as e:
                if attempts > self.retry_attempts:
                    raise TriggerDeliveryError(
                        f"{request.source} trigger not accepted after {attempts} attempts: {e.reason}",
                        attempts=attempts,
                    ) from e

                remaining = self.max_event_age - age
                console.print(
                    f"[yellow]{request.source} trigger not accepted ({e.reason}); "
                    f"retry {attempts}/{self.retry_attempts} in {min(delay, remaining):.0f}s[/yellow]"
                )
                await self.sleep(max(min(delay, remaining), 0.0))
                delay *= 2

    async def fire(self, request: RunRequest) -> Optional[RunRecord]:
        """Deliver a request and wait for its run; undeliverable requests are reported."""
        try:
            record = await self.deliver(request)
        except TriggerDeliveryError as e:
            self.dropped.append(e)
            console.print(f"[red]❌ Dropped trigger: {e.reason}[/red]")
            return None

        record = await self.orchestrator.wait(record.id)
        self.completed.append(record)
        return record

    def _poll_config(self) -> Optional[RunRequest]:
        try:
            return self.config_trigger.poll()
        except PublishError as e:
            console.print(f"[red]Config change poll failed: {e.reason}[/red]")
            return None

    async def serve(self, stop: Optional[asyncio.Event] = None) -> None:
        """Run the trigger loop until stop is set."""
        stop = stop or asyncio.Event()
        pending: Set[asyncio.Task] = set()

        def spawn(request: RunRequest) -> None:
            task = asyncio.create_task(self.fire(request))
            pending.add(task)
            task.add_done_callback(pending.discard)

        cadences = "\n".join(f"• {c!r}" for c in self.schedule.cadences) or "• none"
        watching = self.config_trigger.key if self.config_trigger else "nothing"
        console.print(Panel.fit(
            f"Cadences:\n{cadences}\nWatching: {watching}",
            title="sitepub dispatcher",
            style="bold blue",
        ))

        last = self.clock()
        next_poll = last

        try:
            while not stop.is_set():
                now = self.clock()
                for request in self.schedule.due(last, now):
                    spawn(request)
                last = now

                if self.config_trigger is not None and now >= next_poll:
                    request = await asyncio.to_thread(self._poll_config)
                    next_poll = now + timedelta(seconds=self.poll_interval)
                    if request is not None:
                        spawn(request)

                wait = self.poll_interval
                upcoming = self.schedule.next_fire(now)
                if upcoming is not None:
                    wait = min(wait, seconds_until(upcoming, now))
                if self.config_trigger is not None:
                    wait = min(wait, seconds_until(next_poll, now))

                try:
                    await asyncio.wait_for(stop.wait(), timeout=max(wait, 0.01))
                except asyncio.TimeoutError:
                    pass
        finally:
            if pending:
                console.print(f"[dim]Waiting for {len(pending)} trigger(s) to finish...[/dim]")
                await asyncio.gather(*pending)
