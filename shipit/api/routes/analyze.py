from __future__ import annotations

import asyncio

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse
from sse_starlette.sse import EventSourceResponse

from shipit.agents.pipeline import AnalysisPipeline
from shipit.api.errors import error_response, provider_failure
from shipit.config import settings
from shipit.models.schemas import AnalyzeRequest, AnalyzeResponse, ResearchSummary
from shipit.services import logger as log_service
from shipit.services.logger import logger

router = APIRouter(prefix="/api/analyze", tags=["analyze"])

MISSING_IDEA = "Please provide a startup idea"


@router.post("", response_model=AnalyzeResponse)
async def analyze(request: AnalyzeRequest):
    """Run the whole analysis and return the finished report in one response."""
    idea = request.idea.strip()
    if not idea:
        return error_response(MISSING_IDEA, 400)

    pipeline = AnalysisPipeline()
    budget = settings.pipeline_timeout_seconds
    try:
        report = await asyncio.wait_for(pipeline.analyze(idea), timeout=budget)
    except asyncio.TimeoutError:
        logger.warning(f"Analysis exceeded {budget:.0f}s: {idea[:100]}")
        return error_response(f"Analysis timed out after {budget:.0f}s", 504)
    except Exception as e:
        return provider_failure(e, "Analysis failed. Please try again.")

    research = pipeline.research
    return AnalyzeResponse(
        status="complete",
        report=report,
        report_id=pipeline.report_id,
        research=ResearchSummary(
            search_result_count=len(research.raw_search_results),
            competitors_found=len(research.competitors),
            timestamp=research.timestamp,
        ),
    )


@router.post("/stream")
async def analyze_stream(request: AnalyzeRequest):
    """Stream analysis progress as newline-delimited JSON records."""
    idea = request.idea.strip()
    if not idea:
        return error_response(MISSING_IDEA, 400)

    log_service.log_event(event_type="analysis_started", message="NDJSON stream", idea=idea[:100])

    async def ndjson():
        async for event in AnalysisPipeline().stream(idea):
            yield event.to_ndjson()

    return StreamingResponse(
        ndjson(),
        media_type="application/x-ndjson",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/events")
async def analyze_events(idea: str = Query("")):
    """The same event stream framed as Server-Sent Events."""
    idea = idea.strip()
    if not idea:
        return error_response(MISSING_IDEA, 400)

    log_service.log_event(event_type="analysis_started", message="SSE stream", idea=idea[:100])

    async def event_generator():
        async for event in AnalysisPipeline().stream(idea):
            yield event.to_sse()

    return EventSourceResponse(event_generator())
