"""Run archive in database."""

import json
from typing import Any, Dict, List, Optional

from psycopg.types.json import Jsonb

from ..models import RunRecord
from ..pipeline.archive import RunArchive
from .connection import get_connection


class PostgresRunArchive(RunArchive):
    """Archive terminal runs in the runs table."""

    def __init__(self, db_config: Dict[str, Any]) -> None:
        self.db_config = db_config

    def save(self, record: RunRecord) -> None:
        """Insert or replace a run record."""
        request = record.request
        with get_connection(self.db_config) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO runs (
                        id, source, is_draft, build_only, status, failed_stage,
                        triggered_at, started_at, ended_at, record_json
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (id) DO UPDATE SET
                        status = EXCLUDED.status,
                        failed_stage = EXCLUDED.failed_stage,
                        ended_at = EXCLUDED.ended_at,
                        record_json = EXCLUDED.record_json
                    """,
                    (
                        record.id,
                        request.source,
                        request.is_draft,
                        request.build_only,
                        record.status.value,
                        record.failed_stage,
                        request.triggered_at,
                        record.started_at,
                        record.ended_at,
                        Jsonb(record.model_dump(mode="json")),
                    ),
                )
            conn.commit()

    def get(self, run_id: str) -> Optional[RunRecord]:
        """Get run by ID."""
        with get_connection(self.db_config) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT record_json FROM runs WHERE id = %s", (run_id,))
                row = cur.fetchone()
        if row is None:
            return None
        return _to_record(row["record_json"])

    def recent(self, limit: int = 10) -> List[RunRecord]:
        """Get recent runs."""
        with get_connection(self.db_config) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT record_json FROM runs
                    ORDER BY triggered_at DESC
                    LIMIT %s
                    """,
                    (limit,),
                )
                rows = cur.fetchall()
        return [_to_record(row["record_json"]) for row in rows]


def _to_record(value: Any) -> RunRecord:
    # psycopg decodes JSONB to Python objects
    if isinstance(value, (str, bytes)):
        value = json.loads(value)
    return RunRecord.model_validate(value)
