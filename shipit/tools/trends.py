"""Google Trends interest-over-time, fetched through SerpApi."""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

import httpx

from shipit.config import settings
from shipit.models.research import TrendPoint, TrendSeries
from shipit.services.logger import logger

SERPAPI_URL = "https://serpapi.com/search.json"
MIN_YEARLY_POINTS = 3

_FILLER_RE = re.compile(
    r"\b(ai[- ]powered|using ai|with ai|an app|a platform|a tool|that|for|the|and|or)\b",
    re.IGNORECASE,
)


def extract_trends_keywords(idea: str) -> list[str]:
    """Derive up to three short search keywords from the idea text.

    >>> extract_trends_keywords("AI-powered pet health monitoring for dogs")
    ['pet health monitoring dogs', 'pet health monitoring', 'pet health']
    """
    cleaned = re.sub(r"\s+", " ", _FILLER_RE.sub("", idea)).strip()
    words = [w for w in cleaned.split(" ") if len(w) > 2]

    candidates: list[str] = []
    if 0 < len(cleaned) < 50:
        candidates.append(cleaned)
    if len(words) >= 3:
        candidates.append(" ".join(words[:3]))
    if len(words) >= 2:
        candidates.append(" ".join(words[:2]))
    return list(dict.fromkeys(candidates))[:3]


def yearly_averages(timeline: list[dict[str, Any]]) -> list[TrendPoint]:
    """Average monthly points into one integer value per year in range."""
    buckets: dict[int, list[float]] = {}
    for point in timeline:
        try:
            year = datetime.fromtimestamp(int(point["timestamp"]), tz=timezone.utc).year
            value = float(point["values"][0]["extracted_value"])
        except (KeyError, IndexError, TypeError, ValueError):
            continue
        buckets.setdefault(year, []).append(value)

    return [
        TrendPoint(year=str(year), value=round(sum(buckets[year]) / len(buckets[year])))
        for year in range(settings.trends_start_year, settings.trends_end_year + 1)
        if buckets.get(year)
    ]


async def fetch_google_trends(keyword: str) -> list[TrendPoint] | None:
    """Yearly interest for ``keyword``, or None when unavailable or too sparse."""
    if not settings.serpapi_api_key:
        logger.debug("SERPAPI_API_KEY not set, skipping Google Trends")
        return None

    params = {
        "engine": "google_trends",
        "q": keyword,
        "data_type": "TIMESERIES",
        "date": f"{settings.trends_start_year}-01-01 {settings.trends_end_year}-12-31",
        "api_key": settings.serpapi_api_key,
    }
    try:
        async with httpx.AsyncClient(timeout=settings.search_timeout_seconds) as client:
            response = await client.get(SERPAPI_URL, params=params)
            response.raise_for_status()
            payload = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"[trends] Google Trends fetch failed for '{keyword}': {e}")
        return None

    timeline = (payload.get("interest_over_time") or {}).get("timeline_data") or []
    points = yearly_averages(timeline)
    return points if len(points) >= MIN_YEARLY_POINTS else None


async def fetch_trends_for_idea(keywords: list[str]) -> TrendSeries | None:
    """Return the first keyword whose trend series is usable."""
    for keyword in keywords:
        data = await fetch_google_trends(keyword)
        if data:
            return TrendSeries(keyword=keyword, data=data)
    return None
