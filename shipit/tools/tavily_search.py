from __future__ import annotations

from typing import Any

from tavily import AsyncTavilyClient

from shipit.config import settings
from shipit.models.research import SearchHit


async def search(
    query: str,
    *,
    max_results: int = 10,
    search_depth: str = "basic",
    topic: str = "general",
) -> list[SearchHit]:
    """Execute a Tavily web search and map results to search hits."""
    client = AsyncTavilyClient(api_key=settings.tavily_api_key)

    kwargs: dict[str, Any] = {
        "query": query,
        "search_depth": search_depth,
        "max_results": max_results,
        "topic": topic,
    }
    response = await client.search(**kwargs)

    return [
        SearchHit(
            title=r.get("title", ""),
            snippet=r.get("content", ""),
            link=r.get("url", ""),
        )
        for r in response.get("results", [])
    ]
