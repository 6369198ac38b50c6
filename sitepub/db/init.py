"""Database initialization and schema management."""

from typing import Any, Dict

from rich.console import Console

from .connection import get_connection

console = Console()


SCHEMA_SQL = """
-- Archived pipeline runs
CREATE TABLE IF NOT EXISTS runs (
    id TEXT PRIMARY KEY,
    source TEXT NOT NULL,
    is_draft BOOLEAN NOT NULL,
    build_only BOOLEAN NOT NULL DEFAULT FALSE,
    status TEXT NOT NULL CHECK (status IN ('succeeded', 'failed')),
    failed_stage TEXT,
    triggered_at TIMESTAMPTZ NOT NULL,
    started_at TIMESTAMPTZ,
    ended_at TIMESTAMPTZ,
    record_json JSONB NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_runs_triggered_at ON runs(triggered_at);
CREATE INDEX IF NOT EXISTS idx_runs_status ON runs(status);

-- Update trigger function
CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = CURRENT_TIMESTAMP;
    RETURN NEW;
END;
$$ language 'plpgsql';

DROP TRIGGER IF EXISTS update_runs_updated_at ON runs;
CREATE TRIGGER update_runs_updated_at BEFORE UPDATE ON runs
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();
"""


def validate_connection(config: Dict[str, Any]) -> bool:
    """Validate database connection."""
    try:
        with get_connection(config) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 AS ok")
                result = cur.fetchone()
                return result is not None and result["ok"] == 1
    except Exception as e:
        console.print(f"[red]Database connection failed: {e}[/red]")
        return False


def init_database(config: Dict[str, Any]) -> None:
    """Initialize database schema."""
    with get_connection(config) as conn:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
        conn.commit()
    console.print("Database schema initialized successfully")
