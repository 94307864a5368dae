"""Typed outputs of the five section generators."""
from __future__ import annotations

import math
from typing import Any, ClassVar

from pydantic import Field

from shipit.models.report import SECTION_FIELDS, Report, SectionName
from shipit.models.research import WireModel


class SectionOutput(WireModel):
    section: ClassVar[SectionName]

    def payload(self) -> Report:
        """Every report field owned by this section, as one atomic update."""
        dumped = self.model_dump(mode="json", by_alias=True)
        return {key: dumped.get(key) for key in SECTION_FIELDS[self.section]}


class VisionOutput(SectionOutput):
    section: ClassVar[SectionName] = SectionName.VISION
    name: str
    tagline: str
    value_proposition: str
    business_model: str = ""
    features: list[str] = Field(default_factory=list)
    aha_moment: str = ""
    target_users: dict[str, Any] | None = None
    unit_economics_snapshot: dict[str, Any] | None = None
    problem_solution_map: dict[str, Any] | None = None


class MarketOutput(SectionOutput):
    section: ClassVar[SectionName] = SectionName.MARKET
    market: dict[str, Any]
    market_extended: dict[str, Any]

    def payload(self) -> Report:
        data = super().payload()
        extended = dict(data.get("marketExtended") or {})
        extended["marketSize"] = fix_market_size(extended.get("marketSize"))
        data["marketExtended"] = extended
        return data


class BattlefieldOutput(SectionOutput):
    section: ClassVar[SectionName] = SectionName.BATTLEFIELD
    competitors: list[dict[str, Any]]
    secondary_competitors: list[dict[str, Any]] = Field(default_factory=list)
    strategic_position: dict[str, Any] | None = None
    feature_matrix: dict[str, Any]
    competitor_funding: list[dict[str, Any]] = Field(default_factory=list)
    saturation_score: dict[str, Any] | None = None
    moat_analysis: dict[str, Any] | None = None
    case_studies: list[dict[str, Any]] = Field(default_factory=list)


class VerdictOutput(SectionOutput):
    section: ClassVar[SectionName] = SectionName.VERDICT
    strengths: list[dict[str, Any]]
    risks: list[dict[str, Any]]
    hard_question: str
    verdict: str = ""
    unit_economics: dict[str, Any] | None = None
    bull_bear_case: dict[str, Any] | None = None
    profitability_path: list[dict[str, Any]] = Field(default_factory=list)
    defensibility_score: dict[str, Any] | None = None
    final_verdict: dict[str, Any] | None = None
    fatal_flaw: dict[str, Any] | None = None
    success_pattern: dict[str, Any] | None = None
    risk_baseline: dict[str, Any] | None = None
    tech_evolution: list[dict[str, Any]] = Field(default_factory=list)
    next_steps: list[dict[str, Any]] = Field(default_factory=list)
    recommended_blocks: list[str] = Field(default_factory=list)


class AdvisorPersona(WireModel):
    id: str
    name: str
    title: str = ""
    company: str = ""
    avatar: str = ""
    color: str = ""
    bio: str = ""
    expertise: list[str] = Field(default_factory=list)
    opening_message: str = ""
    system_context: str = ""
    voice_gender: str = "female"


class AdvisorsOutput(SectionOutput):
    section: ClassVar[SectionName] = SectionName.ADVISORS
    advisors: list[AdvisorPersona]


SECTION_MODELS: dict[SectionName, type[SectionOutput]] = {
    SectionName.VISION: VisionOutput,
    SectionName.MARKET: MarketOutput,
    SectionName.BATTLEFIELD: BattlefieldOutput,
    SectionName.VERDICT: VerdictOutput,
    SectionName.ADVISORS: AdvisorsOutput,
}

# Keys that must appear at the top level of a well-formed answer; used to
# detect answers the engine nested under a single wrapper key.
EXPECTED_KEYS: dict[SectionName, tuple[str, ...]] = {
    SectionName.VISION: ("name", "tagline", "valueProposition"),
    SectionName.MARKET: ("market", "marketExtended"),
    SectionName.BATTLEFIELD: ("competitors", "featureMatrix"),
    SectionName.VERDICT: ("strengths", "risks", "hardQuestion"),
    SectionName.ADVISORS: ("advisors",),
}

DEFAULT_TAM = 50_000_000_000


def _as_number(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def fix_market_size(market_size: Any) -> dict[str, int]:
    """Force TAM > SAM > SOM >= 1, filling gaps with fixed ratios.

    A TAM below 3 cannot hold the chain in whole units and is replaced.
    """
    raw = market_size if isinstance(market_size, dict) else {}
    tam = round(_as_number(raw.get("tam")))
    if tam < 3:
        tam = DEFAULT_TAM

    sam = _as_number(raw.get("sam"))
    if not 1 <= sam < tam:
        sam = tam * 0.2
    sam = min(max(round(sam), 2), tam - 1)

    som = _as_number(raw.get("som"))
    if not 1 <= som < sam:
        som = sam * 0.03
    som = min(max(round(som), 1), sam - 1)

    return {"tam": tam, "sam": sam, "som": som}
