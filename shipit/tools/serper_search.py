from __future__ import annotations

import httpx

from shipit.config import settings
from shipit.errors import ProviderError
from shipit.models.research import SearchHit
from shipit.services.logger import logger

SERPER_SEARCH_URL = "https://google.serper.dev/search"


async def search(query: str, *, max_results: int = 10) -> list[SearchHit]:
    """Execute a Serper (Google) web search and normalize the organic hits."""
    if not settings.serper_api_key:
        logger.warning("SERPER_API_KEY not set, returning empty results")
        return []

    try:
        async with httpx.AsyncClient(timeout=settings.search_timeout_seconds) as client:
            response = await client.post(
                SERPER_SEARCH_URL,
                json={"q": query, "num": max_results},
                headers={"X-API-KEY": settings.serper_api_key},
            )
            response.raise_for_status()
            payload = response.json()
    except httpx.HTTPStatusError as exc:
        raise ProviderError(f"Serper API error: {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        raise ProviderError(f"Serper request failed: {exc}") from exc

    return [
        SearchHit(
            title=item.get("title", ""),
            snippet=item.get("snippet", ""),
            link=item.get("link", ""),
        )
        for item in payload.get("organic", []) or []
    ]
