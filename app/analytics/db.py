from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from app.core.config import settings


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_db_path() -> Path:
    return Path(settings.analytics_db_path)


def init_db() -> None:
    if not settings.analytics_enabled:
        return
    db_path = _get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS ai_analysis_runs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                run_id TEXT NOT NULL,
                stage TEXT NOT NULL,
                model TEXT NOT NULL,
                attempt INTEGER NOT NULL,
                status TEXT NOT NULL,
                error_code TEXT,
                latency_ms INTEGER
            )
            """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_ai_analysis_runs_created_at
            ON ai_analysis_runs (created_at)
            """
        )
        conn.commit()


def log_oracle_stage_run(
    *,
    run_id: str,
    stage: str,
    model: str,
    attempt: int,
    status: str,
    error_code: str | None = None,
    latency_ms: int | None = None,
) -> None:
    if not settings.analytics_enabled:
        return
    db_path = _get_db_path()
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO ai_analysis_runs (
                created_at, run_id, stage, model, attempt, status, error_code, latency_ms
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                _utc_now(),
                run_id,
                stage,
                model,
                attempt,
                status,
                error_code,
                latency_ms,
            ),
        )
        conn.commit()


def purge_old_records() -> dict[str, int]:
    if not settings.analytics_enabled:
        return {"ai_analysis_runs": 0}

    retention = max(1, int(settings.analytics_retention_days))
    with sqlite3.connect(_get_db_path()) as conn:
        cur = conn.execute(
            "DELETE FROM ai_analysis_runs WHERE created_at < datetime('now', ?)",
            (f"-{retention} days",),
        )
        conn.commit()
        return {"ai_analysis_runs": int(cur.rowcount or 0)}


def _row_to_dict(cursor: sqlite3.Cursor, row: tuple) -> dict[str, Any]:
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def get_stage_summary(days: int = 7) -> dict[str, Any]:
    """Count oracle stage outcomes per stage and status over the last ``days`` days."""
    if not settings.analytics_enabled:
        return {"enabled": False}
    with sqlite3.connect(_get_db_path()) as conn:
        cur = conn.execute(
            """
            SELECT stage, status, COUNT(*) AS count, CAST(AVG(latency_ms) AS INTEGER) AS avg_latency_ms
            FROM ai_analysis_runs
            WHERE created_at >= datetime('now', ?)
            GROUP BY stage, status
            ORDER BY stage, status
            """,
            (f"-{max(1, int(days))} days",),
        )
        rows = [_row_to_dict(cur, row) for row in cur.fetchall()]
    return {"enabled": True, "days": days, "stages": rows}


def get_latest_runs(limit: int = 20) -> list[dict[str, Any]]:
    if not settings.analytics_enabled:
        return []
    with sqlite3.connect(_get_db_path()) as conn:
        cur = conn.execute(
            """
            SELECT created_at, run_id, stage, model, attempt, status, error_code, latency_ms
            FROM ai_analysis_runs
            ORDER BY id DESC
            LIMIT ?
            """,
            (limit,),
        )
        return [_row_to_dict(cur, row) for row in cur.fetchall()]
