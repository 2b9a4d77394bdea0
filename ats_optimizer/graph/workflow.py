from __future__ import annotations
import logging
from typing import Any, Callable, Dict, Mapping, Optional
from langgraph.graph import StateGraph, START, END
from ..config import ScoringPolicy, load_policy
from ..state import PipelineState, RunRecord, build_run_record
from ..schemas import ScoreReport, StructuredResume
from ..agents.resume_parser import parse_resume
from ..agents.ats_scorer import score_after, score_before
from ..agents.resume_optimizer import optimize_resume
from ..agents.output_formatter import format_resume

Runner = Callable[[PipelineState], PipelineState]


def _runner(app: Any) -> Runner:
    def run(state: PipelineState) -> PipelineState:
        final = app.invoke(state)
        # LangGraph app.invoke may return a plain dict; coerce into PipelineState for uniform handling
        if isinstance(final, dict):
            final = PipelineState.model_validate(final)
        return final

    return run


def build_analysis_graph(llms: Mapping[str, Any], policy: Optional[ScoringPolicy] = None) -> Runner:
    """parse -> score_before. Produces resume_json and initial_ats_data."""
    policy = policy or load_policy()

    def parse_node(state: PipelineState) -> Dict[str, Any]:
        return {"resume_json": parse_resume(state.raw_resume_text, llms["parser"])}

    def score_before_node(state: PipelineState) -> Dict[str, Any]:
        report, notices = score_before(state.resume_json, state.raw_jd_text, llms["scorer"], policy)
        return {"initial_ats_data": report, "degraded": notices}

    g = StateGraph(PipelineState)
    g.add_node("parse", parse_node)
    g.add_node("score_before", score_before_node)

    g.add_edge(START, "parse")
    g.add_edge("parse", "score_before")
    g.add_edge("score_before", END)

    return _runner(g.compile())


def build_optimization_graph(llms: Mapping[str, Any], policy: Optional[ScoringPolicy] = None) -> Runner:
    """optimize -> {score_after, format}. The two successors run in the same step."""
    policy = policy or load_policy()

    def optimize_node(state: PipelineState) -> Dict[str, Any]:
        if state.resume_json is None:
            return {"optimized_resume_json": None}
        optimized, notices = optimize_resume(state.resume_json, state.initial_ats_data, llms["optimizer"])
        return {"optimized_resume_json": optimized, "degraded": notices}

    def score_after_node(state: PipelineState) -> Dict[str, Any]:
        resume = state.optimized_resume_json or state.resume_json
        if resume is None:
            return {}
        prior = state.initial_ats_data or ScoreReport(score=0)
        report, notices = score_after(resume, state.raw_jd_text, prior, llms["scorer"], policy)
        return {"final_ats_data": report, "degraded": notices}

    def format_node(state: PipelineState) -> Dict[str, Any]:
        if state.optimized_resume_json is None:
            return {}
        document, notices = format_resume(state.optimized_resume_json, llms["formatter"])
        return {"formatted_output": document, "degraded": notices}

    g = StateGraph(PipelineState)
    g.add_node("optimize", optimize_node)
    g.add_node("score_after", score_after_node)
    g.add_node("format", format_node)

    g.add_edge(START, "optimize")
    g.add_edge("optimize", "score_after")
    g.add_edge("optimize", "format")
    g.add_edge("score_after", END)
    g.add_edge("format", END)

    return _runner(g.compile())


def run_analysis(resume_text: str, jd_text: str, llms: Mapping[str, Any],
                 policy: Optional[ScoringPolicy] = None, provider: str | None = None) -> PipelineState:
    state = PipelineState(raw_resume_text=resume_text, raw_jd_text=jd_text, provider=provider)
    return build_analysis_graph(llms, policy)(state)


def run_optimization(resume: StructuredResume, initial_ats: ScoreReport, jd_text: str,
                     llms: Mapping[str, Any], policy: Optional[ScoringPolicy] = None,
                     sink: Optional[Callable[[RunRecord], None]] = None,
                     provider: str | None = None) -> PipelineState:
    """Second half of a run, fed with the analysis results the caller kept."""
    state = PipelineState(
        raw_jd_text=jd_text,
        resume_json=resume,
        initial_ats_data=initial_ats,
        provider=provider,
    )
    final = build_optimization_graph(llms, policy)(state)
    record = build_run_record(final)
    if sink is not None and record is not None:
        try:
            sink(record)
        except Exception as e:
            logging.error(f"Result sink failed: {e}")
    return final
