from __future__ import annotations

from fastapi import APIRouter

from shipit.agents.edit_agent import Answer, handle_message
from shipit.api.errors import error_response, provider_failure
from shipit.errors import ProviderError
from shipit.models.schemas import AgentRequest, AgentResponse

router = APIRouter(prefix="/api/agent", tags=["agent"])


@router.post("", response_model=AgentResponse, response_model_exclude_none=True)
async def agent(request: AgentRequest):
    """Answer a follow-up question, or plan the edit it asks for."""
    if not request.message.strip() or request.current_data is None:
        return error_response("Message and currentData are required", 400)

    try:
        result = await handle_message(
            request.message,
            request.current_data,
            request.focused_block.model_dump() if request.focused_block else None,
            [s.model_dump() for s in request.sources],
        )
    except ProviderError as e:
        return provider_failure(e, "Agent failed to respond. Please try again.")

    if isinstance(result, Answer):
        return AgentResponse(type="answer", response=result.response)
    return AgentResponse(
        type="edit",
        response=result.response,
        edit_description=result.edit_description,
        edit_instruction=result.edit_instruction,
        affected_sections=list(result.affected_sections),
    )
