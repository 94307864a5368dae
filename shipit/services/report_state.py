"""Consumer-side view of an analysis stream.

``apply_event`` folds one event into an immutable ``AnalysisState``; it never
mutates its input, so a client can keep every intermediate state or replay a
recorded stream in tests.
"""
from __future__ import annotations

import codecs
import json
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from shipit.models.events import EventType, StreamEvent
from shipit.models.report import SECTION_FIELDS, PipelineStage, SectionName
from shipit.services.logger import logger


@dataclass(frozen=True)
class AnalysisState:
    stage: PipelineStage | None = None
    stage_message: str = ""
    progress: tuple[str, ...] = ()
    research: Mapping[str, Any] | None = None
    report: Mapping[str, Any] = field(default_factory=dict)
    completed: frozenset[SectionName] = frozenset()
    report_id: str | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.stage is not None and self.stage.is_terminal

    @property
    def is_complete(self) -> bool:
        return self.stage is PipelineStage.COMPLETE


def _advance(state: AnalysisState, stage: PipelineStage) -> PipelineStage | None:
    if state.stage is not None and stage.rank < state.stage.rank:
        return state.stage
    return stage


def apply_event(state: AnalysisState, event: StreamEvent) -> AnalysisState:
    if state.is_terminal:
        return state

    data = event.data
    kind = event.event

    if kind is EventType.STAGE:
        try:
            requested = PipelineStage(data.get("stage"))
        except ValueError:
            return state
        if requested.is_terminal:
            # terminal stages are reached through complete/error events only
            return state
        new_stage = _advance(state, requested)
        if new_stage is state.stage:
            return state
        return replace(state, stage=new_stage, stage_message=str(data.get("message", "")))

    if kind is EventType.PROGRESS:
        return replace(state, progress=(*state.progress, str(data.get("message", ""))))

    if kind is EventType.RESEARCH_COMPLETE:
        return replace(state, research=dict(data))

    if kind is EventType.SECTION_COMPLETE:
        try:
            section = SectionName(data.get("section"))
        except ValueError:
            return state
        if section in state.completed:
            return state
        payload = data.get("payload") or {}
        merged = dict(state.report)
        for key in SECTION_FIELDS[section]:
            merged[key] = payload.get(key)
        return replace(state, report=merged, completed=state.completed | {section})

    if kind is EventType.COMPLETE:
        return replace(state, stage=PipelineStage.COMPLETE, report_id=data.get("reportId"))

    if kind is EventType.ERROR:
        return replace(
            state,
            stage=PipelineStage.ERROR,
            error=str(data.get("message") or "Unknown error"),
        )

    return state


class NDJSONDecoder:
    """Incremental decoder for newline-delimited event records."""

    def __init__(self) -> None:
        self._buffer = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")()

    def feed(self, chunk: str | bytes) -> list[StreamEvent]:
        if isinstance(chunk, bytes):
            chunk = self._utf8.decode(chunk)
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split("\n")
        return [event for event in map(self._parse, lines) if event is not None]

    def flush(self) -> list[StreamEvent]:
        tail, self._buffer = self._buffer + self._utf8.decode(b"", final=True), ""
        event = self._parse(tail)
        return [event] if event is not None else []

    @staticmethod
    def _parse(line: str) -> StreamEvent | None:
        line = line.strip()
        if not line:
            return None
        try:
            return StreamEvent.from_dict(json.loads(line))
        except (json.JSONDecodeError, KeyError, ValueError, TypeError):
            logger.warning(f"Skipping malformed stream record: {line[:120]}")
            return None
