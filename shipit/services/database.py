"""PostgreSQL report store using asyncpg."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import asyncpg

from shipit.config import settings
from shipit.errors import PersistenceError
from shipit.services import logger as log_service

_pool: asyncpg.Pool | None = None

SCHEMA = """
CREATE TABLE IF NOT EXISTS reports (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    idea TEXT NOT NULL,
    research JSONB NOT NULL DEFAULT '{}'::jsonb,
    report JSONB NOT NULL DEFAULT '{}'::jsonb,
    versions JSONB NOT NULL DEFAULT '[]'::jsonb,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
)
"""


def db_available() -> bool:
    """Check if a database is configured."""
    return bool(settings.database_url)


async def _get_pool() -> asyncpg.Pool:
    """Get or create the connection pool."""
    global _pool
    if not db_available():
        raise PersistenceError("Database not configured. Set DATABASE_URL in .env")
    if _pool is None:
        try:
            _pool = await asyncpg.create_pool(settings.database_url, min_size=1, max_size=10)
        except (OSError, asyncpg.PostgresError) as exc:
            raise PersistenceError(f"Could not connect to database: {exc}") from exc
    return _pool


async def close_pool() -> None:
    """Close the connection pool."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


async def ensure_schema() -> None:
    pool = await _get_pool()
    try:
        async with pool.acquire() as conn:
            await conn.execute(SCHEMA)
    except asyncpg.PostgresError as exc:
        log_service.log_db_operation("create", "reports", "failed", error=str(exc))
        raise PersistenceError(f"Failed to create schema: {exc}") from exc
    log_service.log_db_operation("create", "reports", "success", details="schema ready")


def _coerce_json(value: Any, default: Any) -> Any:
    """Normalize JSON columns that come back as strings."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return default
    return default if value is None else value


def _parse_id(report_id: str) -> UUID | None:
    try:
        return UUID(str(report_id))
    except ValueError:
        return None


async def save_report(idea: str, research: dict[str, Any], report: dict[str, Any]) -> str:
    """Insert a finished report and return its id."""
    pool = await _get_pool()
    try:
        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO reports (idea, research, report)
                VALUES ($1, $2::jsonb, $3::jsonb)
                RETURNING id
                """,
                idea,
                json.dumps(research),
                json.dumps(report),
            )
    except asyncpg.PostgresError as exc:
        log_service.log_db_operation("insert", "reports", "failed", error=str(exc))
        raise PersistenceError(f"Failed to save report: {exc}") from exc
    report_id = str(row["id"])
    log_service.log_db_operation("insert", "reports", "success", details=report_id)
    return report_id


async def load_report(report_id: str) -> dict[str, Any] | None:
    uid = _parse_id(report_id)
    if uid is None:
        return None
    pool = await _get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            """
            SELECT id, idea, research, report, versions, created_at, updated_at
            FROM reports
            WHERE id = $1
            """,
            uid,
        )
    if not row:
        return None
    record = dict(row)
    record["id"] = str(record["id"])
    record["research"] = _coerce_json(record.get("research"), {})
    record["report"] = _coerce_json(record.get("report"), {})
    record["versions"] = _coerce_json(record.get("versions"), [])
    for key in ("created_at", "updated_at"):
        if isinstance(record.get(key), datetime):
            record[key] = record[key].isoformat()
    return record


async def update_report(
    report_id: str,
    report: dict[str, Any],
    edit_description: str,
    affected_sections: list[str],
) -> None:
    """Replace the stored report, keeping the previous one in ``versions``."""
    uid = _parse_id(report_id)
    if uid is None:
        raise PersistenceError(f"Invalid report id: {report_id}")
    pool = await _get_pool()
    version = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "editDescription": edit_description,
        "affectedSections": affected_sections,
    }
    try:
        async with pool.acquire() as conn:
            async with conn.transaction():
                previous = await conn.fetchval(
                    "SELECT report FROM reports WHERE id = $1 FOR UPDATE", uid
                )
                if previous is None:
                    raise PersistenceError(f"Report {report_id} not found")
                version["report"] = _coerce_json(previous, {})
                await conn.execute(
                    """
                    UPDATE reports
                    SET report = $1::jsonb,
                        versions = versions || jsonb_build_array($2::jsonb),
                        updated_at = now()
                    WHERE id = $3
                    """,
                    json.dumps(report),
                    json.dumps(version),
                    uid,
                )
    except asyncpg.PostgresError as exc:
        log_service.log_db_operation("update", "reports", "failed", error=str(exc))
        raise PersistenceError(f"Failed to update report: {exc}") from exc
    log_service.log_db_operation("update", "reports", "success", details=report_id)


async def list_reports(limit: int = 20) -> list[dict[str, Any]]:
    pool = await _get_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch(
            """
            SELECT id, idea, created_at
            FROM reports
            ORDER BY created_at DESC
            LIMIT $1
            """,
            limit,
        )
    return [
        {
            "id": str(r["id"]),
            "idea": r["idea"],
            "created_at": r["created_at"].isoformat()
            if isinstance(r["created_at"], datetime)
            else str(r["created_at"]),
        }
        for r in rows
    ]
