from __future__ import annotations

from typing import Any, Awaitable, Callable, Iterable, Mapping

from shipit.agents.sections import regenerate_section
from shipit.errors import RegenerationError
from shipit.models.report import DEPENDENCY_GRAPH, Report, SectionName, parse_sections
from shipit.services.logger import logger

Regenerator = Callable[..., Awaitable[Report]]


async def regenerate_sections(
    sections: Iterable[Any],
    current_data: Mapping[str, Any],
    edit_instruction: str,
    *,
    regenerate: Regenerator = regenerate_section,
    llm: Any = None,
) -> dict[str, Report]:
    """Regenerate ``sections`` one at a time in dependency order.

    Each section sees the working copy, including sections regenerated
    earlier in the batch. On failure, RegenerationError carries the updates
    made so far; they are not rolled back.
    """
    ordered = DEPENDENCY_GRAPH.order(parse_sections(sections))
    working: Report = dict(current_data)
    updates: dict[str, Report] = {}

    for index, section in enumerate(ordered):
        logger.info(f"Regenerating {section.value} ({index + 1}/{len(ordered)})")
        try:
            payload = await regenerate(section, working, edit_instruction, llm=llm)
        except Exception as e:
            remaining = [s.value for s in ordered[index + 1 :]]
            logger.error(f"Regeneration of {section.value} failed, skipping {remaining}: {e}")
            raise RegenerationError(section.value, e, updates, remaining) from e
        updates[section.value] = payload
        working.update(payload)

    return updates


def merge_updates(report: Mapping[str, Any], updates: Mapping[str, Report]) -> Report:
    merged: Report = dict(report)
    for section in SectionName:
        if section.value in updates:
            merged.update(updates[section.value])
    return merged
