from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator

from shipit.models.events import EventType, StreamEvent
from shipit.models.report import PipelineStage, SectionName

STAGE_MESSAGES: dict[PipelineStage, str] = {
    PipelineStage.RESEARCHING: "Searching the web for competitors, market data, and more...",
    PipelineStage.GENERATING: "Generating vision, market analysis, and competitive landscape...",
    PipelineStage.GENERATING_VERDICT: "Generating strategic verdict...",
    PipelineStage.GENERATING_ADVISORS: "Assembling your advisory board...",
}


def stage(value: PipelineStage, message: str | None = None) -> StreamEvent:
    return StreamEvent(
        event=EventType.STAGE,
        data={"stage": value.value, "message": message or STAGE_MESSAGES.get(value, "")},
    )


def progress(message: str, **kwargs: Any) -> StreamEvent:
    return StreamEvent(event=EventType.PROGRESS, data={"message": message, **kwargs})


def research_complete(sources: int, competitors: int, case_studies: int) -> StreamEvent:
    # searchResultCount and competitorsFound are the names older clients read
    return StreamEvent(
        event=EventType.RESEARCH_COMPLETE,
        data={
            "sources": sources,
            "competitors": competitors,
            "caseStudies": case_studies,
            "searchResultCount": sources,
            "competitorsFound": competitors,
        },
    )


def section_complete(section: SectionName, payload: dict[str, Any]) -> StreamEvent:
    return StreamEvent(
        event=EventType.SECTION_COMPLETE,
        data={"section": section.value, "payload": payload},
    )


def complete(report_id: str | None = None) -> StreamEvent:
    return StreamEvent(event=EventType.COMPLETE, data={"reportId": report_id})


def error(message: str) -> StreamEvent:
    return StreamEvent(event=EventType.ERROR, data={"message": message})


async def bounded_events(
    events: AsyncIterator[StreamEvent], timeout: float
) -> AsyncIterator[StreamEvent]:
    """Relay ``events`` until a terminal event or until ``timeout`` elapses.

    On timeout the source generator is closed and a terminal ``error`` is
    emitted so the consumer never waits on an open stream.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    iterator = events.__aiter__()
    try:
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                yield error(f"Analysis timed out after {timeout:.0f}s")
                return
            try:
                event = await asyncio.wait_for(iterator.__anext__(), timeout=remaining)
            except StopAsyncIteration:
                return
            except asyncio.TimeoutError:
                yield error(f"Analysis timed out after {timeout:.0f}s")
                return
            yield event
            if event.event.is_terminal:
                return
    finally:
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()
