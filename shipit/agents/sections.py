"""Section generators: one JSON-mode engine round-trip per section."""
from __future__ import annotations

from typing import Any, Mapping

from shipit import llm_client
from shipit.models.report import SECTION_ORDER, Report, SectionName
from shipit.models.research import CompetitorFinding, RealMarketData, ResearchRecord
from shipit.models.sections import (
    EXPECTED_KEYS,
    SECTION_MODELS,
    AdvisorsOutput,
    BattlefieldOutput,
    MarketOutput,
    SectionOutput,
    VerdictOutput,
    VisionOutput,
)
from shipit.prompts import build_edit_prefix, build_section_input, section_prompt
from shipit.services.structured_output import parse_model

SectionOutputs = Mapping[SectionName, SectionOutput]


async def generate_section(
    section: SectionName,
    context: dict[str, Any],
    *,
    prompt: str | None = None,
    real_data: RealMarketData | None = None,
    label: str | None = None,
    llm: Any = None,
) -> SectionOutput:
    """Generate and validate one section.

    Raises StructuredOutputError when the answer is not a usable payload;
    a section cannot be defaulted.
    """
    instructions = prompt or section_prompt(section, real_data)
    response = await llm_client.complete(
        f"section:{section.value}",
        messages=[{"role": "user", "content": build_section_input(instructions, context)}],
        json_mode=True,
        llm=llm,
    )
    return parse_model(
        response.text,
        SECTION_MODELS[section],
        label or section.value.capitalize(),
        EXPECTED_KEYS[section],
    )


async def generate_vision(research: ResearchRecord, *, llm: Any = None) -> VisionOutput:
    return await generate_section(SectionName.VISION, research.to_wire(), llm=llm)


async def generate_market(research: ResearchRecord, *, llm: Any = None) -> MarketOutput:
    return await generate_section(
        SectionName.MARKET, research.to_wire(), real_data=research.real_market_data, llm=llm
    )


async def generate_battlefield(research: ResearchRecord, *, llm: Any = None) -> BattlefieldOutput:
    return await generate_section(SectionName.BATTLEFIELD, research.to_wire(), llm=llm)


async def generate_verdict(
    research: ResearchRecord,
    vision: VisionOutput,
    market: MarketOutput,
    battlefield: BattlefieldOutput,
    *,
    llm: Any = None,
) -> VerdictOutput:
    context = research.to_wire()
    context["previousSections"] = {
        "vision": vision.payload(),
        "market": market.payload(),
        "battlefield": battlefield.payload(),
    }
    return await generate_section(SectionName.VERDICT, context, llm=llm)


async def generate_advisors(
    research: ResearchRecord,
    battlefield: BattlefieldOutput,
    vision: VisionOutput | None = None,
    *,
    llm: Any = None,
) -> AdvisorsOutput:
    context = research.to_wire()
    context["competitors"] = battlefield.payload()["competitors"]
    if vision is not None:
        context["product"] = {"name": vision.name, "tagline": vision.tagline}
    return await generate_section(SectionName.ADVISORS, context, llm=llm)


async def run_generator(
    section: SectionName,
    research: ResearchRecord,
    outputs: SectionOutputs,
    *,
    llm: Any = None,
) -> SectionOutput:
    """Generate ``section`` from the research and already-completed outputs."""
    if section is SectionName.VISION:
        return await generate_vision(research, llm=llm)
    if section is SectionName.MARKET:
        return await generate_market(research, llm=llm)
    if section is SectionName.BATTLEFIELD:
        return await generate_battlefield(research, llm=llm)
    if section is SectionName.VERDICT:
        return await generate_verdict(
            research,
            outputs[SectionName.VISION],
            outputs[SectionName.MARKET],
            outputs[SectionName.BATTLEFIELD],
            llm=llm,
        )
    return await generate_advisors(
        research, outputs[SectionName.BATTLEFIELD], outputs.get(SectionName.VISION), llm=llm
    )


def assemble_report(outputs: SectionOutputs) -> Report:
    report: Report = {}
    for section in SECTION_ORDER:
        if section in outputs:
            report.update(outputs[section].payload())
    return report


def minimal_research(current_data: Mapping[str, Any]) -> ResearchRecord:
    """Research stand-in rebuilt from a report; edits have no live search data."""
    competitors = [
        CompetitorFinding(
            name=c.get("name", ""), funding=c.get("funding", ""), pricing=c.get("pricing", "")
        )
        for c in current_data.get("competitors") or []
        if isinstance(c, dict)
    ]
    return ResearchRecord(idea=str(current_data.get("name") or ""), competitors=competitors)


async def regenerate_section(
    section: SectionName,
    current_data: Mapping[str, Any],
    edit_instruction: str,
    *,
    llm: Any = None,
) -> Report:
    """Regenerate one section against the current report and return its payload."""
    prompt = build_edit_prefix(edit_instruction, dict(current_data)) + section_prompt(section)
    output = await generate_section(
        section,
        minimal_research(current_data).to_wire(),
        prompt=prompt,
        label=f"{section.value.capitalize()} (edit)",
        llm=llm,
    )
    return output.payload()
