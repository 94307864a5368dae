from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest

from shipit.agents.research_agent import (
    ResearchAgent,
    conduct_research,
    fetch_real_market_data,
)
from shipit.models.events import EventType
from shipit.models.research import RealMarketData, SearchHit, TrendPoint, TrendSeries
from shipit.prompts import RESEARCH_SYNTHESIS_PROMPT
from tests.conftest import FakeLLM, last_user_text, text_response, tool_response

SYNTHESIS = {
    "competitors": [
        {"name": "Trade Coffee", "description": "Roaster marketplace", "funding": "$30M"},
        {"name": "Atlas Coffee Club", "funding": 12000000},
    ],
    "market": {"marketSize": "$45B", "growthRate": "6%"},
    "caseStudies": [{"name": "Blue Bottle", "outcome": "acquired", "lesson": "Brand matters"}],
}


def hits(n: int, prefix: str = "hit") -> list[SearchHit]:
    return [SearchHit(title=f"{prefix} {i}", snippet="s", link=f"https://x/{prefix}/{i}") for i in range(n)]


async def no_market_data(idea: str) -> RealMarketData:
    return RealMarketData()


def always_searching(kwargs):
    if last_user_text(kwargs) == RESEARCH_SYNTHESIS_PROMPT:
        return text_response(json.dumps(SYNTHESIS))
    return tool_response(
        ("search_competitors", {"query": "coffee"}),
        ("search_market_data", {"query": "coffee"}),
    )


@pytest.mark.asyncio
async def test_loop_stops_at_tool_round_ceiling():
    llm = FakeLLM(always_searching)
    agent = ResearchAgent(llm=llm, max_tool_rounds=4, fetch_market_data=no_market_data)

    with patch("shipit.tools.search_provider.execute_tool", new=AsyncMock(return_value=hits(2))) as tool:
        events = [e async for e in agent.research("coffee subscription")]

    assert agent.tool_rounds == 4
    assert tool.await_count == 8
    # 4 rounds + the reply whose requests were dropped + synthesis
    assert len(llm.calls) == 6
    assert agent.record is not None
    assert len(agent.record.competitors) == 2
    assert agent.record.competitors[1].funding == "12000000"
    assert all(e.event is EventType.PROGRESS for e in events)


@pytest.mark.asyncio
async def test_loop_exits_when_engine_stops_requesting_tools():
    replies = iter(
        [
            tool_response(("search_competitors", {"query": "coffee boxes"})),
            text_response("I have enough data."),
            text_response(json.dumps(SYNTHESIS)),
        ]
    )
    llm = FakeLLM(lambda kwargs: next(replies))
    agent = ResearchAgent(llm=llm, max_tool_rounds=12, fetch_market_data=no_market_data)

    with patch("shipit.tools.search_provider.execute_tool", new=AsyncMock(return_value=hits(3))):
        [e async for e in agent.research("coffee")]

    assert agent.tool_rounds == 1
    assert len(llm.calls) == 3
    # tool results are fed back as the next turn
    second_turn = llm.calls[1]["messages"][-1]
    assert second_turn["content"][0]["type"] == "tool_result"
    assert second_turn["content"][0]["tool_use_id"] == "call_0"


@pytest.mark.asyncio
async def test_raw_results_accumulate_searches_and_auxiliary_hits():
    sizes = iter([3, 0, 5, 2])
    seen_lengths: list[int] = []

    async def fake_tool(name, args):
        return hits(next(sizes), name)

    async def market_data(idea: str) -> RealMarketData:
        return RealMarketData(job_posting_stats=hits(2, "jobs"), workforce_stats=hits(1, "workforce"))

    llm = FakeLLM(always_searching)
    agent = ResearchAgent(llm=llm, max_tool_rounds=2, fetch_market_data=market_data)

    with patch("shipit.tools.search_provider.execute_tool", new=fake_tool):
        async for event in agent.research("coffee"):
            seen_lengths.append(len(agent.raw_results))

    assert seen_lengths == sorted(seen_lengths)
    assert len(agent.record.raw_search_results) == 3 + 0 + 5 + 2 + 2 + 1
    links = [h.link for h in agent.record.raw_search_results]
    assert links[-3:] == ["https://x/jobs/0", "https://x/jobs/1", "https://x/workforce/0"]


@pytest.mark.asyncio
async def test_duplicate_hits_are_kept():
    llm = FakeLLM(always_searching)
    agent = ResearchAgent(llm=llm, max_tool_rounds=1, fetch_market_data=no_market_data)
    same = [SearchHit(title="Trade", snippet="s", link="https://trade.coffee")]

    with patch("shipit.tools.search_provider.execute_tool", new=AsyncMock(return_value=same)):
        [e async for e in agent.research("coffee")]

    assert len(agent.record.raw_search_results) == 2


@pytest.mark.asyncio
async def test_synthesis_parse_failure_degrades_to_empty_record():
    replies = iter([text_response("no tools needed"), text_response("Sorry, here is a summary instead.")])
    llm = FakeLLM(lambda kwargs: next(replies))
    agent = ResearchAgent(llm=llm, fetch_market_data=no_market_data)

    [e async for e in agent.research("coffee")]

    record = agent.record
    assert record.idea == "coffee"
    assert record.competitors == []
    assert record.market.market_size == "Unknown"
    assert record.real_market_data == RealMarketData()


@pytest.mark.asyncio
async def test_synthesis_accepts_fenced_json():
    fenced = "```json\n" + json.dumps(SYNTHESIS) + "\n```"
    replies = iter([text_response("done"), text_response(fenced)])
    agent = ResearchAgent(llm=FakeLLM(lambda kwargs: next(replies)), fetch_market_data=no_market_data)

    [e async for e in agent.research("coffee")]

    assert agent.record.case_studies[0].name == "Blue Bottle"


@pytest.mark.asyncio
async def test_null_fields_in_synthesis_keep_the_record():
    answer = {
        "competitors": [
            {"name": "Trade Coffee", "funding": "$30M"},
            {"name": "Atlas Coffee Club", "funding": None, "strengths": None},
        ],
        "market": None,
        "caseStudies": [{"name": "Blue Bottle", "outcome": "acquired", "lesson": None}],
        "regulatory": None,
    }
    replies = iter([text_response("done"), text_response(json.dumps(answer))])
    agent = ResearchAgent(llm=FakeLLM(lambda kwargs: next(replies)), fetch_market_data=no_market_data)

    [e async for e in agent.research("coffee")]

    record = agent.record
    assert [c.name for c in record.competitors] == ["Trade Coffee", "Atlas Coffee Club"]
    assert record.competitors[1].funding == ""
    assert record.competitors[1].strengths == []
    assert record.case_studies[0].lesson == ""
    assert record.market.market_size == "Unknown"
    assert record.regulatory == []


@pytest.mark.asyncio
async def test_auxiliary_fetch_failures_are_isolated():
    series = TrendSeries(keyword="coffee subscription", data=[TrendPoint(year="2020", value=40)])

    with (
        patch("shipit.tools.trends.fetch_trends_for_idea", new=AsyncMock(return_value=series)),
        patch(
            "shipit.tools.search_provider.search_job_postings",
            new=AsyncMock(side_effect=RuntimeError("quota exceeded")),
        ),
        patch(
            "shipit.tools.search_provider.search_workforce_stats",
            new=AsyncMock(return_value=hits(2)),
        ),
    ):
        data = await fetch_real_market_data("coffee subscription box")

    assert data.google_trends == series
    assert data.job_posting_stats == []
    assert len(data.workforce_stats) == 2


@pytest.mark.asyncio
async def test_trends_progress_message_reports_series():
    async def market_data(idea: str) -> RealMarketData:
        points = [TrendPoint(year=str(y), value=50) for y in (2019, 2020, 2021)]
        return RealMarketData(google_trends=TrendSeries(keyword="coffee box", data=points))

    replies = iter([text_response("done"), text_response("{}")])
    agent = ResearchAgent(llm=FakeLLM(lambda kwargs: next(replies)), fetch_market_data=market_data)

    messages = [e.data["message"] async for e in agent.research("coffee")]

    assert 'Google Trends: "coffee box" with 3 yearly data points' in messages


@pytest.mark.asyncio
async def test_conduct_research_reports_progress():
    replies = iter([text_response("done"), text_response(json.dumps(SYNTHESIS))])
    llm = FakeLLM(lambda kwargs: next(replies))
    messages: list[str] = []

    with patch(
        "shipit.agents.research_agent.fetch_real_market_data",
        new=AsyncMock(return_value=RealMarketData()),
    ):
        record = await conduct_research("coffee", messages.append, llm=llm)

    assert record.idea == "coffee"
    assert messages[0] == "Fetching Google Trends data..."
    assert "Synthesizing research into structured data..." in messages
