"""Tests for pipeline/registry.py and pipeline/archive.py: admission and run history."""

from __future__ import annotations

import pendulum
import pytest

from sitepub.errors import RunRejectedError
from sitepub.models import RunRecord, RunRequest, RunStatus
from sitepub.pipeline import JsonRunArchive, MemoryRunArchive, RunRegistry


def finished(hours: int = 0, status: RunStatus = RunStatus.SUCCEEDED) -> RunRecord:
    record = RunRecord(request=RunRequest(triggered_at=pendulum.datetime(2024, 5, 13, hours, tz="UTC")))
    if status == RunStatus.FAILED:
        record.fail("build", "exit 1")
    else:
        for step in (RunStatus.JOINED, RunStatus.BUILDING, RunStatus.INVALIDATING, RunStatus.SUCCEEDED):
            record.transition(step)
    return record


class TestRunRegistry:
    def test_reject_if_running(self):
        registry = RunRegistry()
        record = registry.open(RunRequest())
        assert registry.busy
        with pytest.raises(RunRejectedError):
            registry.open(RunRequest())

        record.fail("build", "x")
        registry.close(record)
        assert not registry.busy
        assert registry.open(RunRequest()).status == RunStatus.PENDING

    def test_close_requires_terminal(self):
        registry = RunRegistry()
        record = registry.open(RunRequest())
        with pytest.raises(ValueError):
            registry.close(record)
        assert registry.get(record.id) is record

    def test_max_active(self):
        registry = RunRegistry(max_active=2)
        registry.open(RunRequest())
        registry.open(RunRequest())
        assert len(registry.active) == 2
        with pytest.raises(RunRejectedError):
            registry.open(RunRequest())


class TestJsonRunArchive:
    def test_save_and_get(self, tmp_path):
        archive = JsonRunArchive(tmp_path / "runs")
        record = finished(status=RunStatus.FAILED)
        archive.save(record)

        restored = archive.get(record.id)
        assert restored.status == RunStatus.FAILED
        assert restored.failed_stage == "build"
        assert restored.causes == ["exit 1"]
        assert archive.get("unknown") is None

    def test_recent_newest_first(self, tmp_path):
        archive = JsonRunArchive(tmp_path / "runs")
        for hours in (1, 5, 3):
            archive.save(finished(hours))
        assert [r.request.triggered_at.hour for r in archive.recent(2)] == [5, 3]


class TestMemoryRunArchive:
    def test_recent(self):
        archive = MemoryRunArchive()
        old, new = finished(1), finished(2)
        archive.save(old)
        archive.save(new)
        assert archive.recent() == [new, old]
        assert archive.get(old.id) is old
