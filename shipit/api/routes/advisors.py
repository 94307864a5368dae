from __future__ import annotations

from fastapi import APIRouter

from shipit.agents.advisor_agent import advisor_chat
from shipit.api.errors import error_response, provider_failure
from shipit.errors import NotFoundError, ProviderError
from shipit.models.schemas import AdvisorChatRequest, AdvisorChatResponse

router = APIRouter(prefix="/api/advisor-chat", tags=["advisors"])


@router.post("", response_model=AdvisorChatResponse)
async def chat(request: AdvisorChatRequest):
    if not request.advisor_id or not request.messages or request.report is None:
        return error_response("advisorId, messages, and report are required", 400)

    try:
        reply = await advisor_chat(
            request.advisor_id,
            [m.model_dump() for m in request.messages],
            request.report,
        )
    except NotFoundError:
        return error_response("Advisor not found", 404)
    except ProviderError as e:
        return provider_failure(e, "Advisor failed to respond. Please try again.")
    return AdvisorChatResponse(response=reply)
