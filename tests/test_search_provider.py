from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from shipit.errors import ProviderError
from shipit.models.research import SearchHit
from shipit.tools import search_provider, serper_search

HIT = SearchHit(title="Trade Coffee", snippet="Raised $30M", link="https://example.com/trade")


def _settings(mock_settings, provider="serper", tavily_key="tvly-key", fallback=True):
    mock_settings.search_provider = provider
    mock_settings.tavily_api_key = tavily_key
    mock_settings.search_fallback_to_tavily = fallback


@pytest.mark.asyncio
async def test_search_provider_uses_tavily_when_configured():
    with patch("shipit.tools.search_provider.settings") as mock_settings, patch(
        "shipit.tools.search_provider.tavily_search.search", new=AsyncMock(return_value=[HIT])
    ) as tavily:
        _settings(mock_settings, provider="tavily")

        result = await search_provider.search("coffee", max_results=3)

    assert result.provider == "tavily"
    assert result.results == [HIT]
    tavily.assert_awaited_once_with("coffee", max_results=3)


@pytest.mark.asyncio
async def test_search_provider_raises_when_provider_unsupported():
    with patch("shipit.tools.search_provider.settings") as mock_settings:
        _settings(mock_settings, provider="unknown-provider")

        with pytest.raises(ValueError):
            await search_provider.search("query")


@pytest.mark.asyncio
async def test_serper_error_falls_back_to_tavily():
    with patch("shipit.tools.search_provider.settings") as mock_settings, patch(
        "shipit.tools.search_provider.serper_search.search",
        new=AsyncMock(side_effect=ProviderError("Serper API error: 429")),
    ), patch("shipit.tools.search_provider.tavily_search.search", new=AsyncMock(return_value=[HIT])):
        _settings(mock_settings)

        result = await search_provider.search("coffee")

    assert result.provider == "tavily"
    assert result.fallback_from == "serper"
    assert "429" in result.fallback_reason


@pytest.mark.asyncio
async def test_serper_zero_results_falls_back_to_tavily():
    with patch("shipit.tools.search_provider.settings") as mock_settings, patch(
        "shipit.tools.search_provider.serper_search.search", new=AsyncMock(return_value=[])
    ), patch("shipit.tools.search_provider.tavily_search.search", new=AsyncMock(return_value=[HIT])):
        _settings(mock_settings)

        result = await search_provider.search("coffee")

    assert result.results == [HIT]
    assert result.fallback_reason == "serper returned zero results"


@pytest.mark.asyncio
async def test_serper_error_propagates_without_tavily_key():
    with patch("shipit.tools.search_provider.settings") as mock_settings, patch(
        "shipit.tools.search_provider.serper_search.search",
        new=AsyncMock(side_effect=ProviderError("Serper request failed")),
    ):
        _settings(mock_settings, tavily_key="")

        with pytest.raises(ProviderError):
            await search_provider.search("coffee")


@pytest.mark.asyncio
async def test_execute_tool_unknown_name_returns_nothing():
    assert await search_provider.execute_tool("search_weather", {"query": "x"}) == []


@pytest.mark.asyncio
async def test_execute_tool_swallows_provider_failures():
    with patch(
        "shipit.tools.search_provider.search", new=AsyncMock(side_effect=ProviderError("down"))
    ):
        assert await search_provider.execute_tool("search_competitors", {"query": "coffee"}) == []


@pytest.mark.asyncio
async def test_execute_tool_expands_topic_query():
    fake = AsyncMock(return_value=search_provider.SearchResponse(results=[HIT], provider="serper"))
    with patch("shipit.tools.search_provider.search", new=fake):
        hits = await search_provider.execute_tool("search_regulatory", {"query": "coffee delivery"})

    assert hits == [HIT]
    fake.assert_awaited_once_with(
        "coffee delivery regulations licensing requirements compliance", max_results=6
    )


def test_search_tools_expose_research_topics():
    names = [tool["name"] for tool in search_provider.SEARCH_TOOLS]

    assert names == list(search_provider.RESEARCH_TOPICS)
    assert "search_job_postings" not in names
    assert search_provider.tool_label("search_case_studies") == "Searching startup case studies"
    assert search_provider.tool_label("search_other") == "Searching: search_other"


def _mock_client(handler):
    real_client = httpx.AsyncClient

    def factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    return factory


@pytest.mark.asyncio
async def test_serper_maps_organic_hits(monkeypatch):
    monkeypatch.setattr(serper_search.settings, "serper_api_key", "serper-key")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["key"] = request.headers["X-API-KEY"]
        return httpx.Response(
            200, json={"organic": [{"title": "Trade Coffee", "snippet": "Raised $30M", "link": HIT.link}]}
        )

    with patch("shipit.tools.serper_search.httpx.AsyncClient", _mock_client(handler)):
        hits = await serper_search.search("coffee", max_results=5)

    assert hits == [HIT]
    assert seen["key"] == "serper-key"


@pytest.mark.asyncio
async def test_serper_http_error_is_provider_error(monkeypatch):
    monkeypatch.setattr(serper_search.settings, "serper_api_key", "serper-key")

    with patch(
        "shipit.tools.serper_search.httpx.AsyncClient",
        _mock_client(lambda request: httpx.Response(500)),
    ):
        with pytest.raises(ProviderError, match="500"):
            await serper_search.search("coffee")


@pytest.mark.asyncio
async def test_serper_without_key_returns_nothing(monkeypatch):
    monkeypatch.setattr(serper_search.settings, "serper_api_key", "")

    assert await serper_search.search("coffee") == []
