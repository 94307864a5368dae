"""Web search with provider fallback, plus the topic searches used in research."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from shipit.config import settings
from shipit.errors import ProviderError
from shipit.models.research import SearchHit
from shipit.services.logger import logger
from shipit.tools import serper_search, tavily_search


@dataclass
class SearchResponse:
    results: list[SearchHit]
    provider: str
    fallback_from: str | None = None
    fallback_reason: str | None = None


async def _tavily(query: str, max_results: int) -> list[SearchHit]:
    try:
        return await tavily_search.search(query, max_results=max_results)
    except Exception as e:
        raise ProviderError(f"Tavily search failed: {e}") from e


async def search(query: str, *, max_results: int = 10) -> SearchResponse:
    provider = settings.search_provider.lower().strip()
    use_fallback = settings.search_fallback_to_tavily and bool(settings.tavily_api_key)

    if provider == "tavily":
        return SearchResponse(results=await _tavily(query, max_results), provider="tavily")

    if provider == "serper":
        try:
            results = await serper_search.search(query, max_results=max_results)
        except ProviderError as e:
            if not use_fallback:
                raise
            logger.warning(f"Serper failed, falling back to Tavily: {e}")
            return SearchResponse(
                results=await _tavily(query, max_results),
                provider="tavily",
                fallback_from="serper",
                fallback_reason=str(e),
            )
        if results or not use_fallback:
            return SearchResponse(results=results, provider="serper")
        return SearchResponse(
            results=await _tavily(query, max_results),
            provider="tavily",
            fallback_from="serper",
            fallback_reason="serper returned zero results",
        )

    raise ValueError(f"Unsupported SEARCH_PROVIDER: {settings.search_provider}")


@dataclass(frozen=True)
class SearchTopic:
    tool_name: str
    description: str
    label: str
    template: str
    max_results: int

    def query(self, text: str) -> str:
        return self.template.format(q=text, year=settings.trends_end_year)


COMPETITORS = SearchTopic(
    "search_competitors",
    "Search for competitors in this market, their funding, pricing, and positioning",
    "Searching competitors & funding data",
    "{q} competitors funding pricing comparison",
    10,
)
MARKET = SearchTopic(
    "search_market_data",
    "Search for market size, growth trends, TAM/SAM/SOM data",
    "Searching market size & growth trends",
    "{q} market size TAM growth rate trends {year}",
    10,
)
COMPLAINTS = SearchTopic(
    "search_user_complaints",
    "Search for user complaints, reviews, and pain points about existing solutions",
    "Searching user complaints & pain points",
    "{q} user complaints reviews problems frustrations",
    10,
)
REGULATORY = SearchTopic(
    "search_regulatory",
    "Search for regulatory requirements, licensing, and compliance in this industry",
    "Searching regulatory requirements",
    "{q} regulations licensing requirements compliance",
    6,
)
CASE_STUDIES = SearchTopic(
    "search_case_studies",
    "Search for similar startups that succeeded, failed, pivoted, or were acquired",
    "Searching startup case studies",
    "{q} startup success failure case study",
    8,
)
JOB_POSTINGS = SearchTopic(
    "search_job_postings",
    "Search for hiring activity in this industry",
    "Searching job postings",
    "{q} job postings hiring trends {year} number of jobs",
    6,
)
WORKFORCE = SearchTopic(
    "search_workforce_stats",
    "Search for workforce and labor market statistics",
    "Searching workforce statistics",
    "{q} workforce statistics labor market professionals employees {year}",
    6,
)

# Topics the research engine may call by name.
RESEARCH_TOPICS: dict[str, SearchTopic] = {
    t.tool_name: t for t in (COMPETITORS, MARKET, COMPLAINTS, REGULATORY, CASE_STUDIES)
}

SEARCH_TOOLS: list[dict[str, Any]] = [
    {
        "name": topic.tool_name,
        "description": topic.description,
        "input_schema": {
            "type": "object",
            "properties": {"query": {"type": "string", "description": "Search query"}},
            "required": ["query"],
        },
    }
    for topic in RESEARCH_TOPICS.values()
]


async def search_topic(topic: SearchTopic, text: str) -> list[SearchHit]:
    response = await search(topic.query(text), max_results=topic.max_results)
    return response.results


async def search_job_postings(idea: str) -> list[SearchHit]:
    return await search_topic(JOB_POSTINGS, idea)


async def search_workforce_stats(idea: str) -> list[SearchHit]:
    return await search_topic(WORKFORCE, idea)


def tool_label(name: str) -> str:
    topic = RESEARCH_TOPICS.get(name)
    return topic.label if topic else f"Searching: {name}"


async def execute_tool(name: str, args: dict[str, Any]) -> list[SearchHit]:
    """Run one engine-requested search; unknown tools and failures yield no hits."""
    topic = RESEARCH_TOPICS.get(name)
    if topic is None:
        logger.warning(f"Unknown search tool requested: {name}")
        return []
    query = str(args.get("query") or "")
    try:
        return await search_topic(topic, query)
    except ProviderError as e:
        logger.warning(f"{name} failed, continuing without results: {e}")
        return []
