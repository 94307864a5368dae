from __future__ import annotations

from fastapi import APIRouter

from shipit.agents.regeneration import merge_updates, regenerate_sections
from shipit.api.errors import error_response
from shipit.errors import RegenerationError
from shipit.models.report import DEPENDENCY_GRAPH, parse_sections
from shipit.models.schemas import RegenerateRequest, RegenerateResponse
from shipit.services import database as db
from shipit.services.logger import logger

router = APIRouter(prefix="/api/regenerate", tags=["regenerate"])


async def _persist_version(report_id: str, report: dict, description: str, sections: list[str]) -> None:
    try:
        await db.update_report(report_id, report, description, sections)
    except Exception as e:
        logger.warning(f"Failed to persist edited report {report_id}: {e}")


@router.post("", response_model=RegenerateResponse)
async def regenerate(request: RegenerateRequest):
    """Regenerate the given sections in dependency order against the current report."""
    sections = DEPENDENCY_GRAPH.order(parse_sections(request.sections))
    if not sections or request.current_data is None:
        return error_response("sections and currentData are required", 400)

    try:
        updates = await regenerate_sections(
            sections, request.current_data, request.edit_instruction
        )
    except RegenerationError as e:
        return error_response(
            f"Failed to regenerate {e.failed_section}. Please try again.",
            500,
            updates=e.updates,
            failedSection=e.failed_section,
            remainingSections=e.remaining,
        )

    if request.report_id and db.db_available():
        await _persist_version(
            request.report_id,
            merge_updates(request.current_data, updates),
            request.edit_description or request.edit_instruction,
            list(updates),
        )

    return RegenerateResponse(updates=updates)
