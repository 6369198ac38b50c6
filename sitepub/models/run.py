"""Run models for tracking pipeline executions."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

import pendulum
from pydantic import ConfigDict, Field, field_validator, model_validator

from .base import RecordModel
from .content import ContentItem, Lang


class RunStatus(str, Enum):
    """States of the pipeline state machine."""

    PENDING = "pending"
    RUNNING = "running"
    JOINED = "joined"
    BUILDING = "building"
    INVALIDATING = "invalidating"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RunStatus.SUCCEEDED, RunStatus.FAILED)


# Legal forward transitions; anything else is a programming error.
TRANSITIONS: Dict[RunStatus, tuple] = {
    RunStatus.PENDING: (RunStatus.RUNNING, RunStatus.JOINED, RunStatus.FAILED),
    RunStatus.RUNNING: (RunStatus.JOINED, RunStatus.FAILED),
    RunStatus.JOINED: (RunStatus.BUILDING, RunStatus.FAILED),
    RunStatus.BUILDING: (RunStatus.INVALIDATING, RunStatus.FAILED),
    RunStatus.INVALIDATING: (RunStatus.SUCCEEDED, RunStatus.FAILED),
    RunStatus.SUCCEEDED: (),
    RunStatus.FAILED: (),
}


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return pendulum.now("UTC")


class RunRequest(RecordModel):
    """Immutable input to one pipeline execution."""

    model_config = ConfigDict(frozen=True)

    triggered_at: datetime = Field(default_factory=utcnow, description="When the trigger fired")
    is_draft: bool = Field(False, description="Build includes draft content")
    build_only: bool = Field(False, description="Skip content branches and rebuild only")
    source: str = Field("manual", description="Trigger that produced the request")

    @field_validator("triggered_at")
    @classmethod
    def validate_aware(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], source: str = "schedule") -> "RunRequest":
        """Create a request from a scheduled trigger payload."""
        return cls(
            triggered_at=pendulum.parse(payload["time"]),
            is_draft=bool(payload.get("isDraft", False)),
            source=source,
        )

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the scheduled trigger payload shape."""
        return {
            "time": pendulum.instance(self.triggered_at).to_iso8601_string(),
            "isDraft": self.is_draft,
        }

    def age(self, now: Optional[datetime] = None) -> float:
        """Seconds elapsed since the trigger fired."""
        now = now or utcnow()
        return (now - self.triggered_at).total_seconds()


class BranchFailure(RecordModel):
    """Failure of one language branch."""

    lang: Lang = Field(..., description="Branch language")
    stage: str = Field(..., description="Stage that failed (generate, render)")
    cause: str = Field(..., description="Underlying error message")
    attempts: int = Field(1, description="Attempts made before giving up")


class BranchResult(RecordModel):
    """Outcome of one language branch."""

    lang: Lang = Field(..., description="Branch language")
    item: Optional[ContentItem] = Field(None, description="Generated item on success")
    failure: Optional[BranchFailure] = Field(None, description="Failure details")

    @model_validator(mode="after")
    def check_exclusive(self) -> "BranchResult":
        """Exactly one of item and failure must be set."""
        if (self.item is None) == (self.failure is None):
            raise ValueError("BranchResult needs exactly one of item or failure")
        return self

    @property
    def success(self) -> bool:
        return self.item is not None


class BuildArtifact(RecordModel):
    """Result of a static site build."""

    success: bool = Field(..., description="Whether the build succeeded")
    artifact_location: str = Field(..., description="Directory holding the built site")
    log_ref: Optional[str] = Field(None, description="Path of the build log")
    build_id: str = Field(..., description="Build identifier")
    duration: float = Field(0.0, description="Build duration in seconds")
    error: Optional[str] = Field(None, description="Failure reason")


class InvalidationAck(RecordModel):
    """Confirmation returned by the CDN for an invalidation."""

    distribution_id: str = Field(..., description="CDN distribution")
    invalidation_id: str = Field(..., description="Provider invalidation id")
    paths: List[str] = Field(default_factory=lambda: ["/*"], description="Invalidated paths")
    status: str = Field("InProgress", description="Provider status")


class StatusTransition(RecordModel):
    """One entry of a run's state history."""

    status: RunStatus
    at: datetime


class RunRecord(RecordModel):
    """State machine instance for one pipeline run."""

    id: str = Field(default_factory=lambda: uuid4().hex, description="Run id")
    request: RunRequest = Field(..., description="Request that started the run")
    status: RunStatus = Field(RunStatus.PENDING, description="Current state")
    branch_results: Dict[Lang, BranchResult] = Field(default_factory=dict)
    build_artifact: Optional[BuildArtifact] = Field(None)
    invalidation: Optional[InvalidationAck] = Field(None)
    failed_stage: Optional[str] = Field(None, description="Stage recorded on failure")
    causes: List[str] = Field(default_factory=list, description="Errors collected during the run")
    started_at: Optional[datetime] = Field(None)
    ended_at: Optional[datetime] = Field(None)
    transitions: List[StatusTransition] = Field(default_factory=list)

    def transition(self, status: RunStatus) -> None:
        """Move to a new state, enforcing the state machine."""
        if status not in TRANSITIONS[self.status]:
            raise ValueError(f"Illegal transition {self.status.value} -> {status.value}")
        now = utcnow()
        if self.started_at is None:
            self.started_at = now
        self.status = status
        self.transitions.append(StatusTransition(status=status, at=now))
        if status.is_terminal:
            self.ended_at = now

    def fail(self, stage: str, cause: str) -> None:
        """Terminate the run as failed in the given stage."""
        self.failed_stage = stage
        self.causes.append(cause)
        self.transition(RunStatus.FAILED)

    def record_branch(self, result: BranchResult) -> None:
        """Store a branch outcome, attaching its failure as a cause."""
        self.branch_results[result.lang] = result
        if result.failure is not None:
            failure = result.failure
            self.causes.append(f"branch {failure.lang.value} failed in {failure.stage}: {failure.cause}")

    @property
    def branch_failures(self) -> List[BranchFailure]:
        return [r.failure for r in self.branch_results.values() if r.failure is not None]

    @property
    def duration(self) -> float:
        """Run duration in seconds."""
        if self.started_at and self.ended_at:
            return (self.ended_at - self.started_at).total_seconds()
        return 0.0
