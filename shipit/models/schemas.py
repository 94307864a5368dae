from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shipit.models.report import SectionName


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Requests ---


class AnalyzeRequest(_Body):
    idea: str = ""


class FocusedBlock(_Body):
    section: str
    label: str


class CitationSource(_Body):
    title: str = ""
    link: str = ""
    snippet: str = ""


class RegenerateRequest(_Body):
    sections: list[str] = Field(default_factory=list)
    current_data: dict[str, Any] | None = None
    edit_instruction: str = ""
    report_id: str | None = None
    edit_description: str | None = None


class AgentRequest(_Body):
    message: str = ""
    current_data: dict[str, Any] | None = None
    focused_block: FocusedBlock | None = None
    sources: list[CitationSource] = Field(default_factory=list)


class ChatMessage(_Body):
    role: str
    content: str


class AdvisorChatRequest(_Body):
    advisor_id: str = ""
    messages: list[ChatMessage] = Field(default_factory=list)
    report: dict[str, Any] | None = None


# --- Responses ---


class ResearchSummary(_Body):
    search_result_count: int
    competitors_found: int
    timestamp: str


class AnalyzeResponse(_Body):
    status: str = "complete"
    report: dict[str, Any]
    report_id: str | None = None
    research: ResearchSummary


class RegenerateResponse(_Body):
    updates: dict[str, dict[str, Any]]


class AgentResponse(_Body):
    type: Literal["answer", "edit"]
    response: str
    edit_description: str | None = None
    edit_instruction: str | None = None
    affected_sections: list[SectionName] | None = None


class AdvisorChatResponse(_Body):
    response: str


class ReportSummary(_Body):
    id: str
    idea: str
    created_at: str
