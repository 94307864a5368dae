from __future__ import annotations

import asyncio
from typing import Any, AsyncGenerator

from shipit import llm_client
from shipit.llm_client import MessageResponse, ToolUseBlock
from shipit.models.events import StreamEvent
from shipit.services import logger as log_service
from shipit.services import streaming


class BaseAgent:
    """Base agent that wraps the tool-use loop.

    Subclasses define `system_prompt`, `tools`, and `handle_tool_call`.
    `run` is an async generator yielding StreamEvents as the agent works; the
    dialogue stays in `self.messages` so a subclass can continue it afterwards.
    """

    name: str = "base"
    system_prompt: str = ""
    tools: list[dict[str, Any]] = []

    def __init__(self, model: str | None = None, llm: Any = None):
        self.model = model
        self.llm = llm
        self.messages: list[dict[str, Any]] = []
        self.tool_rounds = 0

    async def handle_tool_call(
        self, tool_name: str, tool_input: dict[str, Any]
    ) -> tuple[str, list[StreamEvent]]:
        """Execute a tool call and return (result_text, events_to_emit)."""
        raise NotImplementedError(f"Tool {tool_name} not handled")

    def tool_label(self, tool_name: str) -> str:
        return f"Calling {tool_name}"

    def round_events(self) -> list[StreamEvent]:
        """Events emitted after each completed tool round."""
        return []

    async def send(self, content: Any, **kwargs: Any) -> MessageResponse:
        """Append a user turn, call the engine, and record its reply."""
        self.messages.append({"role": "user", "content": content})
        response = await llm_client.complete(
            self.name,
            messages=self.messages,
            system=self.system_prompt,
            tools=self.tools or None,
            model=self.model,
            llm=self.llm,
            **kwargs,
        )
        return response

    async def _run_tool(self, block: ToolUseBlock) -> tuple[dict[str, Any], list[StreamEvent]]:
        try:
            result_text, events = await self.handle_tool_call(block.name, block.input)
        except Exception as e:
            log_service.log_event(
                event_type="tool_error",
                message=f"{self.name} tool {block.name} failed",
                error=str(e),
            )
            return (
                {"type": "tool_result", "tool_use_id": block.id, "content": f"Error: {e}", "is_error": True},
                [],
            )
        return {"type": "tool_result", "tool_use_id": block.id, "content": result_text}, events

    async def run(
        self,
        user_message: str,
        *,
        max_turns: int = 10,
    ) -> AsyncGenerator[StreamEvent, None]:
        """Run the tool-use loop for at most `max_turns` tool rounds.

        Reaching the ceiling is not an error: requests in the engine's last
        reply are dropped and the loop exits.
        """
        content: Any = user_message
        while True:
            response = await self.send(content)
            calls = response.tool_calls

            if not calls or self.tool_rounds >= max_turns:
                if calls:
                    log_service.log_event(
                        event_type="tool_ceiling",
                        message=f"{self.name} reached {max_turns} tool rounds",
                        dropped_calls=len(calls),
                    )
                self.messages.append({"role": "assistant", "content": response.text or "Done."})
                return

            self.messages.append({"role": "assistant", "content": response.content})
            for block in calls:
                yield streaming.progress(self.tool_label(block.name))

            # all requests of one round run concurrently; results keep request order
            outcomes = await asyncio.gather(*(self._run_tool(block) for block in calls))
            tool_results = []
            for result, events in outcomes:
                tool_results.append(result)
                for event in events:
                    yield event

            self.tool_rounds += 1
            for event in self.round_events():
                yield event
            content = tool_results

