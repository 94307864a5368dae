"""Analysis pipeline: research, then sections layer by layer over the dependency graph."""
from __future__ import annotations

import asyncio
import uuid
from typing import Any, AsyncGenerator, Awaitable, Callable

from shipit.agents.research_agent import ResearchAgent
from shipit.agents.sections import assemble_report, run_generator
from shipit.config import settings
from shipit.models.events import StreamEvent
from shipit.models.report import (
    DEPENDENCY_GRAPH,
    DependencyGraph,
    PipelineStage,
    Report,
    SectionName,
)
from shipit.models.research import ResearchRecord
from shipit.models.sections import SectionOutput
from shipit.services import database as db
from shipit.services import logger as log_service
from shipit.services import streaming
from shipit.services.logger import logger

Generator = Callable[
    [SectionName, ResearchRecord, dict[SectionName, SectionOutput]], Awaitable[SectionOutput]
]


def layer_stage(layer: list[SectionName]) -> PipelineStage:
    if SectionName.ADVISORS in layer:
        return PipelineStage.GENERATING_ADVISORS
    if SectionName.VERDICT in layer:
        return PipelineStage.GENERATING_VERDICT
    return PipelineStage.GENERATING


class SectionScheduler:
    """Runs the section graph with as much parallelism as it allows.

    Sections of one layer run as concurrent tasks and are emitted in the order
    they finish; the next layer starts only after the whole layer resolved.
    """

    def __init__(
        self,
        generate: Generator | None = None,
        *,
        graph: DependencyGraph = DEPENDENCY_GRAPH,
        llm: Any = None,
    ):
        self.graph = graph
        self._generate = generate or (
            lambda section, research, outputs: run_generator(section, research, outputs, llm=llm)
        )
        self.outputs: dict[SectionName, SectionOutput] = {}

    async def _produce(
        self, section: SectionName, research: ResearchRecord
    ) -> tuple[SectionName, SectionOutput]:
        # generators see a snapshot of finished outputs only
        output = await self._generate(section, research, dict(self.outputs))
        return section, output

    async def run(self, research: ResearchRecord) -> AsyncGenerator[StreamEvent, None]:
        for layer in self.graph.stages():
            yield streaming.stage(layer_stage(layer))
            tasks = [asyncio.create_task(self._produce(s, research)) for s in layer]
            try:
                for next_done in asyncio.as_completed(tasks):
                    section, output = await next_done
                    self.outputs[section] = output
                    yield streaming.section_complete(section, output.payload())
            finally:
                for task in tasks:
                    if not task.done():
                        task.cancel()
                # collect every outcome so no failure goes unretrieved
                await asyncio.gather(*tasks, return_exceptions=True)

    @property
    def report(self) -> Report:
        return assemble_report(self.outputs)


class AnalysisPipeline:
    def __init__(
        self,
        llm: Any = None,
        *,
        generate: Generator | None = None,
        agent_factory: Callable[..., ResearchAgent] = ResearchAgent,
        persist: bool = True,
    ):
        self.llm = llm
        self.generate = generate
        self.agent_factory = agent_factory
        self.persist = persist
        self.research: ResearchRecord | None = None
        self.report: Report = {}
        self.report_id: str | None = None
        self.failure: Exception | None = None

    async def _save(self, run_id: str, idea: str, research: ResearchRecord, report: Report) -> str | None:
        if not self.persist or not db.db_available():
            return None
        try:
            return await db.save_report(idea, research.to_wire(), report)
        except Exception as e:
            log_service.log_pipeline_step(run_id, "persist", "failed", {"error": str(e)})
            return None

    async def run(self, idea: str) -> AsyncGenerator[StreamEvent, None]:
        """Yield the analysis event stream; always ends with complete or error."""
        run_id = uuid.uuid4().hex[:8]
        log_service.log_pipeline_step(run_id, "start", "running", {"idea": idea[:100]})
        try:
            yield streaming.stage(PipelineStage.RESEARCHING)
            agent = self.agent_factory(llm=self.llm)
            async for event in agent.research(idea):
                yield event
            research = agent.record
            self.research = research
            log_service.log_pipeline_step(
                run_id,
                "research",
                "completed",
                {"sources": len(research.raw_search_results), "tool_rounds": agent.tool_rounds},
            )
            yield streaming.research_complete(
                sources=len(research.raw_search_results),
                competitors=len(research.competitors),
                case_studies=len(research.case_studies),
            )

            scheduler = SectionScheduler(self.generate, llm=self.llm)
            async for event in scheduler.run(research):
                yield event
            self.report = scheduler.report

            self.report_id = await self._save(run_id, idea, research, self.report)
            log_service.log_pipeline_step(run_id, "complete", "completed", {"report_id": self.report_id})
            yield streaming.complete(self.report_id)
        except Exception as e:
            self.failure = e
            logger.exception(f"[pipeline {run_id}] analysis failed")
            log_service.log_pipeline_step(run_id, "error", "failed", {"error": str(e)})
            yield streaming.error(str(e) or "Analysis failed")

    async def analyze(self, idea: str) -> Report:
        """Run to completion without streaming; re-raises the failure, if any."""
        async for _ in self.run(idea):
            pass
        if self.failure is not None:
            raise self.failure
        return self.report

    def stream(self, idea: str, timeout: float | None = None) -> AsyncGenerator[StreamEvent, None]:
        """`run` bounded by the overall pipeline timeout."""
        budget = settings.pipeline_timeout_seconds if timeout is None else timeout
        return streaming.bounded_events(self.run(idea), budget)


async def generate_all_sections(research: ResearchRecord, *, llm: Any = None) -> Report:
    """Non-streaming path: run the whole graph and return the assembled report."""
    scheduler = SectionScheduler(llm=llm)
    async for _ in scheduler.run(research):
        pass
    return scheduler.report
