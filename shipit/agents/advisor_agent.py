from __future__ import annotations

from typing import Any, Mapping

from shipit import llm_client
from shipit.errors import NotFoundError
from shipit.prompts import build_advisor_system_prompt


def find_advisor(report: Mapping[str, Any], advisor_id: str) -> dict[str, Any]:
    for advisor in report.get("advisors") or []:
        if isinstance(advisor, dict) and advisor.get("id") == advisor_id:
            return advisor
    raise NotFoundError(f"Advisor not found: {advisor_id}")


async def advisor_chat(
    advisor_id: str,
    messages: list[Mapping[str, str]],
    report: Mapping[str, Any],
    *,
    llm: Any = None,
) -> str:
    """One in-character reply from an advisor persona of ``report``."""
    advisor = find_advisor(report, advisor_id)
    history: list[dict[str, Any]] = []
    if advisor.get("openingMessage"):
        history.append({"role": "assistant", "content": advisor["openingMessage"]})
    for message in messages:
        role = "user" if message.get("role") == "user" else "assistant"
        history.append({"role": role, "content": message.get("content", "")})

    response = await llm_client.complete(
        f"advisor:{advisor_id}",
        system=build_advisor_system_prompt(advisor, dict(report)),
        messages=history,
        llm=llm,
    )
    return response.text.strip()
