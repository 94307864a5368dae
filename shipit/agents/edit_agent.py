"""Follow-up messages: read-only questions versus report edits."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Literal, Mapping

from shipit import llm_client
from shipit.errors import StructuredOutputError
from shipit.models.report import DEPENDENCY_GRAPH, DependencyGraph, SectionName, parse_sections
from shipit.prompts import (
    CLARIFICATION_MESSAGE,
    build_answer_prompt,
    build_classify_prompt,
    build_edit_plan_prompt,
)
from shipit.services.logger import logger
from shipit.services.structured_output import parse_json_object

Intent = Literal["question", "edit"]


@dataclass(frozen=True)
class Answer:
    response: str


@dataclass(frozen=True)
class EditPlan:
    edit_description: str
    edit_instruction: str
    affected_sections: tuple[SectionName, ...]
    response: str


def required_sections(
    sections: Iterable[Any], graph: DependencyGraph = DEPENDENCY_GRAPH
) -> list[SectionName]:
    """Widen a section selection to everything it invalidates, in dependency order.

    Downstream sections follow the graph; the verdict summarizes the rest of
    the report and joins any non-empty selection.
    """
    selected = graph.closure(parse_sections(sections))
    if selected:
        selected.add(SectionName.VERDICT)
    return graph.order(selected)


async def classify_message(
    message: str, focused_block: Mapping[str, str] | None = None, *, llm: Any = None
) -> Intent:
    """Return "edit" only for an unambiguous edit; anything else is a question."""
    response = await llm_client.complete(
        "agent:classify",
        messages=[{"role": "user", "content": build_classify_prompt(message, focused_block)}],
        json_mode=True,
        llm=llm,
    )
    try:
        parsed = parse_json_object(response.text, "classification")
    except StructuredOutputError as e:
        logger.warning(f"Classification unreadable, treating as question: {e}")
        return "question"
    return "edit" if str(parsed.get("type", "")).strip().lower() == "edit" else "question"


async def answer_question(
    message: str,
    current_data: Mapping[str, Any],
    focused_block: Mapping[str, str] | None = None,
    sources: list[Mapping[str, str]] | None = None,
    *,
    llm: Any = None,
) -> str:
    prompt = build_answer_prompt(message, dict(current_data), focused_block, list(sources or []))
    response = await llm_client.complete(
        "agent:answer", messages=[{"role": "user", "content": prompt}], llm=llm
    )
    return response.text.strip()


async def plan_edit(
    message: str, current_data: Mapping[str, Any], *, llm: Any = None
) -> EditPlan | None:
    """Plan an edit, or return None when the planner's answer is unusable."""
    response = await llm_client.complete(
        "agent:plan_edit",
        messages=[{"role": "user", "content": build_edit_plan_prompt(message, dict(current_data))}],
        json_mode=True,
        llm=llm,
    )
    try:
        parsed = parse_json_object(response.text, "edit plan")
    except StructuredOutputError as e:
        logger.warning(f"Edit plan unreadable: {e}")
        return None

    requested = parsed.get("affectedSections")
    sections = required_sections(requested if isinstance(requested, list) else [])
    if not sections:
        logger.warning(f"Edit plan named no known sections: {requested!r}")
        return None

    chosen = parse_sections(requested)
    if set(sections) != set(chosen):
        logger.info(
            f"Widened edit sections from {[s.value for s in chosen]} to {[s.value for s in sections]}"
        )

    description = str(parsed.get("editDescription") or message)
    return EditPlan(
        edit_description=description,
        edit_instruction=str(parsed.get("editInstruction") or message),
        affected_sections=tuple(sections),
        response=str(parsed.get("response") or description),
    )


async def handle_message(
    message: str,
    current_data: Mapping[str, Any],
    focused_block: Mapping[str, str] | None = None,
    sources: list[Mapping[str, str]] | None = None,
    *,
    llm: Any = None,
) -> Answer | EditPlan:
    """Classify a follow-up and either answer it or plan the edit."""
    if await classify_message(message, focused_block, llm=llm) == "question":
        return Answer(await answer_question(message, current_data, focused_block, sources, llm=llm))
    plan = await plan_edit(message, current_data, llm=llm)
    return plan if plan is not None else Answer(CLARIFICATION_MESSAGE)
