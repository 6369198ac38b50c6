"""Error taxonomy for the publishing pipeline."""

from typing import Optional


class PublishError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class StorageError(PublishError):
    """Object storage read or write failed."""


class KeyNotFoundError(StorageError):
    """Requested storage key does not exist."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Key not found: {key}")
        self.key = key


class GenerationError(PublishError):
    """Content source unavailable or produced invalid content."""


class RenderError(PublishError):
    """Thumbnail could not be composited, encoded or stored."""


class BuildError(PublishError):
    """Static site build tool could not be prepared or invoked."""


class InvalidationError(PublishError):
    """CDN invalidation request failed."""


class RunRejectedError(PublishError):
    """Orchestrator refused a run because another run is in flight."""

    def __init__(self, active_run_id: Optional[str] = None) -> None:
        reason = "Another run is in progress"
        if active_run_id:
            reason = f"{reason}: {active_run_id}"
        super().__init__(reason)
        self.active_run_id = active_run_id


class TriggerDeliveryError(PublishError):
    """Trigger could not be delivered to the orchestrator."""

    def __init__(self, reason: str, attempts: int = 0) -> None:
        super().__init__(reason)
        self.attempts = attempts
