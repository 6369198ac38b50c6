"""In-flight run registry."""

import threading
from typing import Dict, List, Optional

from ..errors import RunRejectedError
from ..models import RunRecord, RunRequest


class RunRegistry:
    """Runs currently owned by the orchestrator, keyed by run id.

    Admission is reject-if-running: once ``max_active`` runs are open, further
    requests are refused until one of them closes.
    """

    def __init__(self, max_active: int = 1) -> None:
        if max_active < 1:
            raise ValueError("max_active must be at least 1")
        self.max_active = max_active
        self._active: Dict[str, RunRecord] = {}
        self._lock = threading.Lock()

    def open(self, request: RunRequest) -> RunRecord:
        """Admit a request and create its run record."""
        with self._lock:
            if len(self._active) >= self.max_active:
                raise RunRejectedError(next(iter(self._active)))
            record = RunRecord(request=request)
            self._active[record.id] = record
            return record

    def close(self, record: RunRecord) -> None:
        """Release a terminal run."""
        if not record.status.is_terminal:
            raise ValueError(f"Run {record.id} is still {record.status.value}")
        with self._lock:
            self._active.pop(record.id, None)

    def get(self, run_id: str) -> Optional[RunRecord]:
        with self._lock:
            return self._active.get(run_id)

    @property
    def active(self) -> List[RunRecord]:
        with self._lock:
            return list(self._active.values())

    @property
    def busy(self) -> bool:
        with self._lock:
            return len(self._active) >= self.max_active
