from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from shipit import llm_client
from shipit.errors import LLMTimeoutError, ProviderError
from shipit.llm_client import OpenRouterMessagesAdapter, ToolUseBlock

from tests.conftest import FakeLLM, text_response


def _openai_reply(content=None, tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    usage = SimpleNamespace(prompt_tokens=12, completion_tokens=3)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage=usage)


def test_history_converts_to_openai_messages():
    adapter = OpenRouterMessagesAdapter(openai_client=None)
    history = [
        {"role": "user", "content": "Research coffee"},
        {
            "role": "assistant",
            "content": [
                {"type": "text", "text": "Searching"},
                ToolUseBlock(type="tool_use", id="c1", name="search_competitors", input={"query": "coffee"}),
            ],
        },
        {
            "role": "user",
            "content": [
                {"type": "tool_result", "tool_use_id": "c1", "content": "[]"},
                {"type": "tool_result", "tool_use_id": "c2", "content": "boom", "is_error": True},
            ],
        },
    ]

    converted = adapter._to_openai_messages("be brief", history)

    assert converted[0] == {"role": "system", "content": "be brief"}
    assert converted[1] == {"role": "user", "content": "Research coffee"}
    assert converted[2]["content"] == "Searching"
    assert converted[2]["tool_calls"][0]["function"] == {
        "name": "search_competitors",
        "arguments": '{"query": "coffee"}',
    }
    assert converted[3] == {"role": "tool", "tool_call_id": "c1", "content": "[]"}
    assert converted[4]["content"] == "ERROR: boom"


def test_tools_convert_to_functions():
    adapter = OpenRouterMessagesAdapter(openai_client=None)

    tools = adapter._to_openai_tools([{"name": "search_market_data", "input_schema": {"type": "object"}}])

    assert tools == [
        {
            "type": "function",
            "function": {"name": "search_market_data", "description": "", "parameters": {"type": "object"}},
        }
    ]


@pytest.mark.asyncio
async def test_create_maps_tool_calls_and_json_mode():
    call = SimpleNamespace(id="c9", function=SimpleNamespace(name="search_market_data", arguments="not json"))
    openai_client = SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=AsyncMock(return_value=_openai_reply("hi", [call]))))
    )
    adapter = OpenRouterMessagesAdapter(openai_client)

    response = await adapter.create(
        model="m", max_tokens=10, system="", messages=[{"role": "user", "content": "x"}], json_mode=True
    )

    sent = openai_client.chat.completions.create.await_args.kwargs
    assert sent["response_format"] == {"type": "json_object"}
    assert "tools" not in sent
    assert response.text == "hi"
    assert response.tool_calls[0].input == {}
    assert response.usage.input_tokens == 12


@pytest.mark.asyncio
async def test_complete_passes_through_response():
    llm = FakeLLM(lambda kwargs: text_response("ok"))

    response = await llm_client.complete("unit", messages=[{"role": "user", "content": "x"}], model="m", llm=llm)

    assert response.text == "ok"
    assert llm.calls[0]["model"] == "m"


@pytest.mark.asyncio
async def test_complete_times_out():
    async def slow(kwargs):
        await asyncio.sleep(1)
        return text_response("late")

    with pytest.raises(LLMTimeoutError) as excinfo:
        await llm_client.complete("Vision", messages=[], model="m", llm=FakeLLM(slow), timeout=0.01)

    assert excinfo.value.caller == "Vision"


@pytest.mark.asyncio
async def test_complete_wraps_transport_errors():
    def broken(kwargs):
        raise ConnectionError("reset by peer")

    with pytest.raises(ProviderError, match="reset by peer"):
        await llm_client.complete("research", messages=[], model="m", llm=FakeLLM(broken))


def test_model_override(monkeypatch):
    monkeypatch.setattr(llm_client.settings, "openrouter_model", "")
    assert llm_client.get_model() == llm_client.settings.default_model

    monkeypatch.setattr(llm_client.settings, "openrouter_model", "anthropic/claude-sonnet")
    assert llm_client.get_model() == "anthropic/claude-sonnet"
