from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for records exchanged with the engine and with clients (camelCase)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # the engine writes null for unknown values; those fall back to field defaults
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class SearchHit(WireModel):
    title: str = ""
    snippet: str = ""
    link: str = ""


class CompetitorFinding(WireModel):
    name: str = ""
    description: str = ""
    funding: str = ""
    pricing: str = ""
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)


class MarketSummary(WireModel):
    market_size: str = "Unknown"
    growth_rate: str = "Unknown"
    key_trends: list[str] = Field(default_factory=list)
    target_demographics: list[str] = Field(default_factory=list)


class UserComplaint(WireModel):
    source: str = ""
    content: str = ""
    theme: str = ""


class CaseStudyFinding(WireModel):
    name: str = ""
    outcome: str = ""
    key_details: str = ""
    lesson: str = ""


class RegulatoryFinding(WireModel):
    area: str = ""
    requirements: str = ""
    complexity: str = ""


class TrendPoint(WireModel):
    year: str
    value: int  # 0-100, Google Trends normalized


class TrendSeries(WireModel):
    keyword: str
    data: list[TrendPoint]


class RealMarketData(WireModel):
    """Data fetched from APIs rather than synthesized by the engine."""

    google_trends: TrendSeries | None = None
    job_posting_stats: list[SearchHit] = Field(default_factory=list)
    workforce_stats: list[SearchHit] = Field(default_factory=list)


class ResearchFindings(WireModel):
    """The part of a research record the engine synthesizes."""

    competitors: list[CompetitorFinding] = Field(default_factory=list)
    market: MarketSummary = Field(default_factory=MarketSummary)
    user_complaints: list[UserComplaint] = Field(default_factory=list)
    case_studies: list[CaseStudyFinding] = Field(default_factory=list)
    regulatory: list[RegulatoryFinding] = Field(default_factory=list)


class ResearchRecord(ResearchFindings):
    idea: str
    raw_search_results: list[SearchHit] = Field(default_factory=list)
    real_market_data: RealMarketData | None = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @classmethod
    def build(
        cls,
        idea: str,
        findings: ResearchFindings,
        raw_search_results: list[SearchHit],
        real_market_data: RealMarketData | None,
    ) -> "ResearchRecord":
        return cls(
            idea=idea,
            competitors=findings.competitors,
            market=findings.market,
            user_complaints=findings.user_complaints,
            case_studies=findings.case_studies,
            regulatory=findings.regulatory,
            raw_search_results=raw_search_results,
            real_market_data=real_market_data,
        )
