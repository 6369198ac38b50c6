"""Publishing pipeline orchestration."""

from .archive import JsonRunArchive, MemoryRunArchive, RunArchive, create_archive
from .orchestrator import LANGUAGES, PipelineOrchestrator
from .registry import RunRegistry

__all__ = [
    "JsonRunArchive",
    "LANGUAGES",
    "MemoryRunArchive",
    "PipelineOrchestrator",
    "RunArchive",
    "RunRegistry",
    "create_archive",
]
