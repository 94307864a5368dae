"""Shared fakes: a scripted reasoning engine and fixed section payloads."""
from __future__ import annotations

import copy
import inspect
import json
from typing import Any, Callable

import pytest

from shipit.llm_client import MessageResponse, TextBlock, ToolUseBlock, Usage
from shipit.models.report import SectionName
from shipit.models.research import CompetitorFinding, ResearchRecord, SearchHit


def text_response(text: str) -> MessageResponse:
    return MessageResponse(content=[TextBlock(type="text", text=text)], usage=Usage(10, 5))


def tool_response(*calls: tuple[str, dict[str, Any]]) -> MessageResponse:
    blocks = [
        ToolUseBlock(type="tool_use", id=f"call_{i}", name=name, input=args)
        for i, (name, args) in enumerate(calls)
    ]
    return MessageResponse(content=blocks, usage=Usage(10, 5))


class _ScriptedMessages:
    def __init__(self, handler: Callable[[dict[str, Any]], Any]):
        self.handler = handler
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> MessageResponse:
        # snapshot: agents keep appending to the same history list
        self.calls.append(copy.deepcopy(kwargs))
        result = self.handler(kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result


class FakeLLM:
    """Stands in for the client adapter; `handler` maps call kwargs to a response."""

    def __init__(self, handler: Callable[[dict[str, Any]], Any]):
        self.messages = _ScriptedMessages(handler)

    @property
    def calls(self) -> list[dict[str, Any]]:
        return self.messages.calls


def last_user_text(kwargs: dict[str, Any]) -> str:
    for message in reversed(kwargs["messages"]):
        if message["role"] == "user" and isinstance(message["content"], str):
            return message["content"]
    return ""


SECTION_MARKERS = {
    SectionName.VISION: 'the "Vision" section',
    SectionName.MARKET: 'the "Market" section',
    SectionName.BATTLEFIELD: 'the "Battlefield"',
    SectionName.VERDICT: 'the "Verdict" section',
    SectionName.ADVISORS: "advisor personas",
}


def section_for_prompt(text: str) -> SectionName | None:
    for section, marker in SECTION_MARKERS.items():
        if marker in text:
            return section
    return None


SECTION_PAYLOADS: dict[SectionName, dict[str, Any]] = {
    SectionName.VISION: {
        "name": "BeanBox",
        "tagline": "Small-batch roasts at your door",
        "valueProposition": "Curated single-origin coffee from independent roasters.",
        "features": ["Roaster marketplace", "Taste profile quiz"],
    },
    SectionName.MARKET: {
        "market": {"fundingTotal": "$400M+", "jobPostings": 1200},
        "marketExtended": {"marketSize": {"tam": 40_000_000_000, "sam": 8_000_000_000, "som": 0}},
    },
    SectionName.BATTLEFIELD: {
        "competitors": [
            {"name": "Trade Coffee", "x": 70, "y": 60, "funding": "$30M", "pricing": "Mid-range"},
            {"name": "Atlas Coffee Club", "x": 50, "y": 40, "funding": "Undisclosed", "pricing": "Budget"},
        ],
        "featureMatrix": {"features": ["Roaster choice"], "competitors": []},
    },
    SectionName.VERDICT: {
        "strengths": [{"title": "LOYAL NICHE", "description": "Repeat buyers", "source": "Reddit"}],
        "risks": [{"title": "CHURN", "description": "Boxes get cancelled", "source": "Reviews"}],
        "hardQuestion": "Why would subscribers stay past month three?",
        "verdict": "Promising niche with churn risk.",
    },
    SectionName.ADVISORS: {
        "advisors": [
            {
                "id": "skeptical-vc",
                "name": "Dana Ortiz",
                "title": "Partner",
                "company": "Northbeam Ventures",
                "openingMessage": "Trade Coffee already owns this. Why you?",
                "systemContext": "You are Dana Ortiz, a skeptical VC.",
                "expertise": ["Unit economics"],
            }
        ]
    },
}


def section_llm(overrides: dict[SectionName, str] | None = None) -> FakeLLM:
    """Engine answering every section prompt with its fixed payload."""

    def handler(kwargs: dict[str, Any]) -> MessageResponse:
        section = section_for_prompt(last_user_text(kwargs))
        assert section is not None, "unexpected prompt"
        if overrides and section in overrides:
            return text_response(overrides[section])
        return text_response(json.dumps(SECTION_PAYLOADS[section]))

    return FakeLLM(handler)


@pytest.fixture
def research_record() -> ResearchRecord:
    return ResearchRecord(
        idea="subscription box for artisanal coffee",
        competitors=[
            CompetitorFinding(name="Trade Coffee", funding="$30M"),
            CompetitorFinding(name="Atlas Coffee Club"),
        ],
        raw_search_results=[SearchHit(title="Trade Coffee", snippet="...", link="https://example.com")],
    )


@pytest.fixture
def full_report() -> dict[str, Any]:
    report: dict[str, Any] = {}
    for payload in SECTION_PAYLOADS.values():
        report.update(copy.deepcopy(payload))
    return report
