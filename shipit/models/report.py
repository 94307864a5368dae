"""Report vocabulary: sections, their field sets and the dependency graph."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping

# A report is a sparse mapping from report field names to values; any subset
# of sections may be present while a run is in flight.
Report = dict[str, Any]


class SectionName(str, Enum):
    VISION = "vision"
    MARKET = "market"
    BATTLEFIELD = "battlefield"
    VERDICT = "verdict"
    ADVISORS = "advisors"


SECTION_ORDER: tuple[SectionName, ...] = tuple(SectionName)

SECTION_FIELDS: dict[SectionName, tuple[str, ...]] = {
    SectionName.VISION: (
        "name",
        "tagline",
        "valueProposition",
        "businessModel",
        "features",
        "ahaMoment",
        "targetUsers",
        "unitEconomicsSnapshot",
        "problemSolutionMap",
    ),
    SectionName.MARKET: ("market", "marketExtended"),
    SectionName.BATTLEFIELD: (
        "competitors",
        "secondaryCompetitors",
        "strategicPosition",
        "featureMatrix",
        "competitorFunding",
        "saturationScore",
        "moatAnalysis",
        "caseStudies",
    ),
    SectionName.VERDICT: (
        "strengths",
        "risks",
        "hardQuestion",
        "verdict",
        "unitEconomics",
        "bullBearCase",
        "profitabilityPath",
        "defensibilityScore",
        "finalVerdict",
        "fatalFlaw",
        "successPattern",
        "riskBaseline",
        "techEvolution",
        "nextSteps",
        "recommendedBlocks",
    ),
    SectionName.ADVISORS: ("advisors",),
}


class PipelineStage(str, Enum):
    RESEARCHING = "researching"
    GENERATING = "generating"
    GENERATING_VERDICT = "generating_verdict"
    GENERATING_ADVISORS = "generating_advisors"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _STAGE_RANK[self]

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineStage.COMPLETE, PipelineStage.ERROR)


_STAGE_RANK = {
    PipelineStage.RESEARCHING: 0,
    PipelineStage.GENERATING: 1,
    PipelineStage.GENERATING_VERDICT: 2,
    PipelineStage.GENERATING_ADVISORS: 3,
    PipelineStage.COMPLETE: 4,
    PipelineStage.ERROR: 4,
}


def parse_sections(values: Iterable[Any]) -> list[SectionName]:
    """Keep the known section names from ``values``, dropping duplicates."""
    known = {s.value: s for s in SectionName}
    out: list[SectionName] = []
    for value in values:
        key = value.value if isinstance(value, SectionName) else str(value).strip().lower()
        section = known.get(key)
        if section is not None and section not in out:
            out.append(section)
    return out


@dataclass(frozen=True)
class DependencyGraph:
    """Static producer/consumer relations among sections.

    ``inputs`` are data dependencies (the generator consumes the output),
    ``references`` mark sections whose text quotes another section, and
    ``after`` constrains ordering only.
    """

    inputs: Mapping[SectionName, tuple[SectionName, ...]]
    references: Mapping[SectionName, tuple[SectionName, ...]] = field(default_factory=dict)
    after: Mapping[SectionName, tuple[SectionName, ...]] = field(default_factory=dict)

    def prerequisites(self, section: SectionName) -> set[SectionName]:
        return {
            *self.inputs.get(section, ()),
            *self.references.get(section, ()),
            *self.after.get(section, ()),
        }

    def depth(self, section: SectionName) -> int:
        prereqs = self.prerequisites(section)
        if not prereqs:
            return 0
        return 1 + max(self.depth(p) for p in prereqs)

    def order(self, sections: Iterable[SectionName]) -> list[SectionName]:
        """Return ``sections`` in dependency order, ties broken by report order."""
        return sorted(set(sections), key=lambda s: (self.depth(s), SECTION_ORDER.index(s)))

    def stages(self) -> list[list[SectionName]]:
        """Group every section into layers that may run concurrently."""
        layers: dict[int, list[SectionName]] = {}
        for section in self.order(SECTION_ORDER):
            layers.setdefault(self.depth(section), []).append(section)
        return [layers[d] for d in sorted(layers)]

    def dependents(self, section: SectionName) -> set[SectionName]:
        """Sections whose content goes stale when ``section`` changes."""
        return {
            s
            for s in SECTION_ORDER
            if section in self.inputs.get(s, ()) or section in self.references.get(s, ())
        }

    def closure(self, sections: Iterable[SectionName]) -> set[SectionName]:
        pending = list(sections)
        seen: set[SectionName] = set()
        while pending:
            section = pending.pop()
            if section in seen:
                continue
            seen.add(section)
            pending.extend(self.dependents(section) - seen)
        return seen


DEPENDENCY_GRAPH = DependencyGraph(
    inputs={
        SectionName.VERDICT: (SectionName.VISION, SectionName.MARKET, SectionName.BATTLEFIELD),
        SectionName.ADVISORS: (SectionName.BATTLEFIELD,),
    },
    # advisor personas mention the product name
    references={SectionName.ADVISORS: (SectionName.VISION,)},
    after={SectionName.ADVISORS: (SectionName.VERDICT,)},
)


def section_payload(section: SectionName, report: Mapping[str, Any]) -> Report:
    return {key: report.get(key) for key in SECTION_FIELDS[section]}
