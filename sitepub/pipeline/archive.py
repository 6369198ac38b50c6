"""Archive of terminal run records."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from ..models import RunRecord


class RunArchive(ABC):
    """Persistent store for finished runs."""

    @abstractmethod
    def save(self, record: RunRecord) -> None:
        """Persist a terminal run record."""

    @abstractmethod
    def get(self, run_id: str) -> Optional[RunRecord]:
        """Load a run record by id."""

    @abstractmethod
    def recent(self, limit: int = 10) -> List[RunRecord]:
        """Most recent runs, newest first."""


class JsonRunArchive(RunArchive):
    """One JSON document per run in the workspace."""

    def __init__(self, runs_dir: Path) -> None:
        self.runs_dir = Path(runs_dir)
        self.runs_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, run_id: str) -> Path:
        return self.runs_dir / f"{run_id}.json"

    def save(self, record: RunRecord) -> None:
        self._path(record.id).write_text(record.model_dump_json(indent=2), encoding="utf-8")

    def get(self, run_id: str) -> Optional[RunRecord]:
        path = self._path(run_id)
        if not path.exists():
            return None
        return RunRecord.model_validate_json(path.read_text(encoding="utf-8"))

    def recent(self, limit: int = 10) -> List[RunRecord]:
        records = [
            RunRecord.model_validate_json(p.read_text(encoding="utf-8"))
            for p in self.runs_dir.glob("*.json")
        ]
        records.sort(key=lambda r: r.request.triggered_at, reverse=True)
        return records[:limit]


class MemoryRunArchive(RunArchive):
    """Keeps records in memory; used when nothing should touch disk."""

    def __init__(self) -> None:
        self.records: List[RunRecord] = []

    def save(self, record: RunRecord) -> None:
        self.records.append(record)

    def get(self, run_id: str) -> Optional[RunRecord]:
        return next((r for r in self.records if r.id == run_id), None)

    def recent(self, limit: int = 10) -> List[RunRecord]:
        return sorted(self.records, key=lambda r: r.request.triggered_at, reverse=True)[:limit]


def create_archive(config) -> RunArchive:
    """Postgres archive when a database is configured, JSON files otherwise."""
    db_config = config.get_db_config()
    if db_config is None:
        return JsonRunArchive(config.runs_dir)

    # db.runs subclasses RunArchive, import lazily
    from ..db import PostgresRunArchive

    return PostgresRunArchive(db_config)
