from __future__ import annotations
import operator
from typing import Annotated, List, Optional
from pydantic import BaseModel, Field
from .schemas import ScoreReport, StructuredResume

JD_SNIPPET_CHARS = 500


class PipelineState(BaseModel):
    # Input
    raw_resume_text: str = ""
    raw_jd_text: str = ""
    provider: str | None = None

    # Intermediate
    resume_json: Optional[StructuredResume] = None
    initial_ats_data: Optional[ScoreReport] = None
    optimized_resume_json: Optional[StructuredResume] = None

    # Output
    final_ats_data: Optional[ScoreReport] = None
    formatted_output: str = ""
    # Parallel branches both append here, so updates are concatenated
    degraded: Annotated[List[str], operator.add] = Field(default_factory=list)


class RunRecord(BaseModel):
    """Per-run summary handed to an external sink for persistence."""

    initial_score: int
    final_score: int
    candidate_name: str = "Unknown"
    missing_keywords: List[str] = Field(default_factory=list)
    jd_snippet: str = ""


def build_run_record(state: PipelineState) -> Optional[RunRecord]:
    if state.initial_ats_data is None or state.final_ats_data is None:
        return None
    resume = state.resume_json or state.optimized_resume_json
    name = resume.personal.name.strip() if resume else ""
    return RunRecord(
        initial_score=state.initial_ats_data.score,
        final_score=state.final_ats_data.score,
        candidate_name=name or "Unknown",
        missing_keywords=list(state.initial_ats_data.missing_keywords),
        jd_snippet=state.raw_jd_text[:JD_SNIPPET_CHARS],
    )
