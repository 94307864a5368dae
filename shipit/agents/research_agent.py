"""Tool-calling research loop plus the auxiliary market-data fetchers."""
from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncGenerator, Awaitable, Callable, TypeVar

from shipit.agents.base import BaseAgent
from shipit.config import settings
from shipit.errors import ProviderError, ShipItError, StructuredOutputError
from shipit.models.events import EventType, StreamEvent
from shipit.models.research import (
    RealMarketData,
    ResearchFindings,
    ResearchRecord,
    SearchHit,
)
from shipit.prompts import RESEARCH_SYNTHESIS_PROMPT, build_research_prompt
from shipit.services import streaming
from shipit.services.logger import logger
from shipit.services.structured_output import parse_model
from shipit.tools import search_provider, trends

T = TypeVar("T")


async def _fetch_or_default(label: str, call: Awaitable[T], default: T) -> T:
    try:
        return await call
    except Exception as e:
        logger.warning(f"[research] {label} unavailable: {e}")
        return default


async def fetch_real_market_data(idea: str) -> RealMarketData:
    """Run the three auxiliary lookups concurrently; each failure is isolated."""
    google_trends, job_posting_stats, workforce_stats = await asyncio.gather(
        _fetch_or_default(
            "Google Trends", trends.fetch_trends_for_idea(trends.extract_trends_keywords(idea)), None
        ),
        _fetch_or_default("job postings", search_provider.search_job_postings(idea), []),
        _fetch_or_default("workforce stats", search_provider.search_workforce_stats(idea), []),
    )
    return RealMarketData(
        google_trends=google_trends,
        job_posting_stats=job_posting_stats,
        workforce_stats=workforce_stats,
    )


class ResearchAgent(BaseAgent):
    """Researches one idea and leaves the result in `record`."""

    name = "research"
    system_prompt = "You are a startup research analyst with web search tools."
    tools = search_provider.SEARCH_TOOLS

    def __init__(
        self,
        model: str | None = None,
        llm: Any = None,
        *,
        max_tool_rounds: int | None = None,
        fetch_market_data: Callable[[str], Awaitable[RealMarketData]] | None = None,
    ):
        super().__init__(model=model, llm=llm)
        self.max_tool_rounds = (
            settings.research_max_tool_rounds if max_tool_rounds is None else max_tool_rounds
        )
        self.fetch_market_data = fetch_market_data or fetch_real_market_data
        # every hit from every search, in arrival order
        self.raw_results: list[SearchHit] = []
        self.record: ResearchRecord | None = None

    def tool_label(self, tool_name: str) -> str:
        return search_provider.tool_label(tool_name)

    async def handle_tool_call(
        self, tool_name: str, tool_input: dict[str, Any]
    ) -> tuple[str, list[StreamEvent]]:
        hits = await search_provider.execute_tool(tool_name, tool_input)
        self.raw_results.extend(hits)
        return json.dumps({"results": [h.to_wire() for h in hits]}), []

    def round_events(self) -> list[StreamEvent]:
        return [streaming.progress(f"Found {len(self.raw_results)} sources so far...")]

    async def research(self, idea: str) -> AsyncGenerator[StreamEvent, None]:
        yield streaming.progress("Fetching Google Trends data...")
        market_task = asyncio.create_task(self.fetch_market_data(idea))
        try:
            yield streaming.progress("Researching your startup idea...")
            async for event in self.run(build_research_prompt(idea), max_turns=self.max_tool_rounds):
                yield event

            yield streaming.progress("Gathering real market data from Google Trends...")
            real_data = await market_task
        finally:
            if not market_task.done():
                market_task.cancel()

        self.raw_results.extend(real_data.job_posting_stats)
        self.raw_results.extend(real_data.workforce_stats)
        if real_data.google_trends:
            series = real_data.google_trends
            yield streaming.progress(
                f'Google Trends: "{series.keyword}" with {len(series.data)} yearly data points'
            )
        else:
            yield streaming.progress("Google Trends data unavailable, will estimate from research")

        yield streaming.progress("Synthesizing research into structured data...")
        findings = await self.synthesize()
        self.record = ResearchRecord.build(idea, findings, self.raw_results, real_data)

    async def synthesize(self) -> ResearchFindings:
        """Ask for the structured record; fall back to empty findings on failure."""
        try:
            response = await self.send(RESEARCH_SYNTHESIS_PROMPT)
            return parse_model(response.text, ResearchFindings, "research synthesis")
        except (StructuredOutputError, ProviderError) as e:
            logger.error(f"Failed to synthesize research, using defaults: {e}")
            return ResearchFindings()


async def conduct_research(
    idea: str,
    on_progress: Callable[[str], None] | None = None,
    *,
    llm: Any = None,
) -> ResearchRecord:
    agent = ResearchAgent(llm=llm)
    async for event in agent.research(idea):
        if on_progress and event.event is EventType.PROGRESS:
            on_progress(event.data.get("message", ""))
    if agent.record is None:
        raise ShipItError("Research finished without a record")
    return agent.record
