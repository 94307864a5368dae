"""OpenRouter LLM client factory with a messages-style adapter.

Agents keep their dialogue history as Anthropic-style content blocks
(``text`` / ``tool_use`` / ``tool_result``); the adapter converts that
history to the OpenAI chat format on every call and maps the reply back.
"""
from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any

from shipit.config import settings
from shipit.errors import LLMTimeoutError, ProviderError
from shipit.services import logger as log_service


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class TextBlock:
    type: str
    text: str


@dataclass
class ToolUseBlock:
    type: str
    id: str
    name: str
    input: dict[str, Any]


@dataclass
class MessageResponse:
    content: list[Any]
    usage: Usage

    @property
    def text(self) -> str:
        return "\n".join(b.text for b in self.content if b.type == "text")

    @property
    def tool_calls(self) -> list[ToolUseBlock]:
        return [b for b in self.content if b.type == "tool_use"]


def _block_attr(block: Any, name: str) -> Any:
    if isinstance(block, dict):
        return block.get(name)
    return getattr(block, name, None)


class OpenRouterMessagesAdapter:
    def __init__(self, openai_client: Any):
        self._client = openai_client

    def _to_openai_messages(self, system: str, messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
        openai_messages: list[dict[str, Any]] = []
        if system:
            openai_messages.append({"role": "system", "content": system})

        for message in messages:
            role = message["role"]
            content = message["content"]

            if isinstance(content, str):
                openai_messages.append({"role": role, "content": content})
                continue

            if role == "assistant" and isinstance(content, list):
                text_parts: list[str] = []
                tool_calls: list[dict[str, Any]] = []
                for block in content:
                    btype = _block_attr(block, "type")
                    if btype == "text":
                        text_value = _block_attr(block, "text")
                        if text_value:
                            text_parts.append(text_value)
                    elif btype == "tool_use":
                        tool_calls.append(
                            {
                                "id": _block_attr(block, "id"),
                                "type": "function",
                                "function": {
                                    "name": _block_attr(block, "name"),
                                    "arguments": json.dumps(_block_attr(block, "input") or {}),
                                },
                            }
                        )
                msg: dict[str, Any] = {"role": "assistant"}
                msg["content"] = "\n".join(text_parts) if text_parts else None
                if tool_calls:
                    msg["tool_calls"] = tool_calls
                openai_messages.append(msg)
                continue

            if role == "user" and isinstance(content, list):
                for tool_result in content:
                    if tool_result.get("type") != "tool_result":
                        continue
                    tool_content = str(tool_result.get("content", ""))
                    if tool_result.get("is_error"):
                        tool_content = f"ERROR: {tool_content}"
                    openai_messages.append(
                        {
                            "role": "tool",
                            "tool_call_id": tool_result.get("tool_use_id", ""),
                            "content": tool_content,
                        }
                    )
                continue

            openai_messages.append({"role": role, "content": str(content)})

        return openai_messages

    def _to_openai_tools(self, tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": t["name"],
                    "description": t.get("description", ""),
                    "parameters": t.get("input_schema", {"type": "object", "properties": {}}),
                },
            }
            for t in tools
        ]

    def _from_openai_response(self, response: Any) -> MessageResponse:
        choice = response.choices[0].message
        content: list[Any] = []

        text = getattr(choice, "content", None)
        if text:
            content.append(TextBlock(type="text", text=text))

        for tc in getattr(choice, "tool_calls", []) or []:
            args = getattr(tc.function, "arguments", "{}") or "{}"
            try:
                parsed_args = json.loads(args)
            except json.JSONDecodeError:
                parsed_args = {}
            content.append(
                ToolUseBlock(
                    type="tool_use",
                    id=tc.id,
                    name=tc.function.name,
                    input=parsed_args if isinstance(parsed_args, dict) else {},
                )
            )

        usage = getattr(response, "usage", None)
        mapped_usage = Usage(
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
        )

        return MessageResponse(content=content, usage=mapped_usage)

    async def create(
        self,
        *,
        model: str,
        max_tokens: int,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        json_mode: bool = False,
    ) -> MessageResponse:
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": self._to_openai_messages(system, messages),
            "max_tokens": max_tokens,
            "temperature": 0,
        }
        if tools:
            kwargs["tools"] = self._to_openai_tools(tools)
            kwargs["tool_choice"] = "auto"
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self._client.chat.completions.create(**kwargs)
        return self._from_openai_response(response)


class OpenRouterClientAdapter:
    def __init__(self, openai_client: Any):
        self.messages = OpenRouterMessagesAdapter(openai_client)


def get_client() -> OpenRouterClientAdapter:
    """Get OpenRouter client via OpenAI-compatible SDK."""
    from openai import AsyncOpenAI

    base_url = settings.openrouter_base_url.strip() or "https://openrouter.ai/api/v1"
    openai_client = AsyncOpenAI(
        api_key=settings.openrouter_api_key,
        base_url=base_url,
    )
    return OpenRouterClientAdapter(openai_client)


def get_model() -> str:
    """Get the active OpenRouter model id."""
    if settings.openrouter_model:
        return settings.openrouter_model
    return settings.default_model


_client: OpenRouterClientAdapter | None = None


def client() -> OpenRouterClientAdapter:
    """Get or create the LLM client."""
    global _client
    if _client is None:
        _client = get_client()
    return _client


async def complete(
    caller: str,
    *,
    messages: list[dict[str, Any]],
    system: str = "",
    tools: list[dict[str, Any]] | None = None,
    json_mode: bool = False,
    model: str | None = None,
    llm: Any = None,
    timeout: float | None = None,
) -> MessageResponse:
    """Run one bounded engine round-trip and log its usage.

    Raises ``LLMTimeoutError`` when the call exceeds ``timeout`` and
    ``ProviderError`` for any other transport failure.
    """
    active_client = llm or client()
    used_model = model or get_model()
    budget = timeout if timeout is not None else settings.llm_timeout_seconds

    t0 = time.monotonic()
    try:
        response = await asyncio.wait_for(
            active_client.messages.create(
                model=used_model,
                max_tokens=settings.llm_max_tokens,
                system=system,
                messages=messages,
                tools=tools,
                json_mode=json_mode,
            ),
            timeout=budget,
        )
    except asyncio.TimeoutError as exc:
        log_service.log_llm_call(
            model=used_model,
            caller=caller,
            duration_ms=int((time.monotonic() - t0) * 1000),
            status="timeout",
            error=f"timed out after {budget}s",
        )
        raise LLMTimeoutError(caller, budget) from exc
    except ProviderError:
        raise
    except Exception as exc:
        log_service.log_llm_call(
            model=used_model,
            caller=caller,
            duration_ms=int((time.monotonic() - t0) * 1000),
            status="error",
            error=str(exc),
        )
        raise ProviderError(f"{caller} failed: {exc}") from exc

    elapsed_ms = int((time.monotonic() - t0) * 1000)
    usage = getattr(response, "usage", None)
    log_service.log_llm_call(
        model=used_model,
        caller=caller,
        input_tokens=getattr(usage, "input_tokens", 0) or 0,
        output_tokens=getattr(usage, "output_tokens", 0) or 0,
        duration_ms=elapsed_ms,
    )
    return response
