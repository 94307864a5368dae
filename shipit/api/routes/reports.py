from __future__ import annotations

from fastapi import APIRouter, Query

from shipit.api.errors import error_response
from shipit.errors import PersistenceError
from shipit.models.schemas import ReportSummary
from shipit.services import database as db

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("", response_model=list[ReportSummary])
async def list_reports(limit: int = Query(20, ge=1, le=100)):
    try:
        rows = await db.list_reports(limit)
    except PersistenceError as e:
        return error_response(str(e), 503)
    return [ReportSummary(**row) for row in rows]


@router.get("/{report_id}")
async def get_report(report_id: str):
    try:
        record = await db.load_report(report_id)
    except PersistenceError as e:
        return error_response(str(e), 503)
    if record is None:
        return error_response("Report not found", 404)
    return record
