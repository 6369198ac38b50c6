"""Data models for the publishing pipeline."""

from .content import ContentItem, Lang
from .run import (
    BranchFailure,
    BranchResult,
    BuildArtifact,
    InvalidationAck,
    RunRecord,
    RunRequest,
    RunStatus,
    StatusTransition,
)

__all__ = [
    "BranchFailure",
    "BranchResult",
    "BuildArtifact",
    "ContentItem",
    "InvalidationAck",
    "Lang",
    "RunRecord",
    "RunRequest",
    "RunStatus",
    "StatusTransition",
]
