from __future__ import annotations
import json
import logging
from typing import Any, List, Optional, Tuple
from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import ValidationError
from ..config import ScoringPolicy
from ..errors import Degradation, MalformedGenerationError
from ..llm_provider import generate
from ..normalizer import parse_json_payload
from ..schemas import ScoreReport, StructuredResume, clamp

SCORE_SCHEMA = (
    '{"score": number, "missing_keywords": ["string"], '
    '"matched_keywords": ["string"], "weak_sections": ["string"]}'
)

FALLBACK_WEAK_SECTION = "Analysis unavailable"

_ANALYSIS_RULES = [
    "1. Analyze BOTH skill types:",
    "   - Hard skills: technical tools, languages, frameworks (e.g. React, AWS).",
    "   - Soft skills: behavioral traits EXPLICITLY mentioned in the JD (e.g. Leadership, Adaptability).",
    "2. Keyword matching is exhaustive: scan the JD for every technical term and explicit soft skill, "
    "compare strictly against the resume and list ALL missing items.",
    "3. List missing keywords in ALPHABETICAL ORDER.",
    "4. Hard skills need exact matches; key technical skills should appear 2-3 times. "
    "Keywords in the most recent role weigh more.",
    "5. Check education and certifications against the requirements.",
    "6. Semantic inference, to eliminate false gaps:",
    "   - If the resume has React, Node, Express and Mongo, treat \"MERN\" as MATCHED.",
    "   - Map specific tools to broader requirements (e.g. Node.js satisfies \"RESTful APIs\" and "
    "\"robust backend logic\").",
    "   - Frontend plus backend tools together satisfy \"full-stack development\".",
]


def build_scorer_prompt(resume: StructuredResume, jd_text: str,
                        prior: Optional[ScoreReport] = None) -> List[Any]:
    system = SystemMessage(content=(
        "You are a sophisticated ATS (Applicant Tracking System) algorithm. Generate a relevancy score "
        "(0-100) by strictly comparing the resume against the job description. Your analysis must be "
        "deterministic and exhaustive. Output ONLY JSON."
    ))
    if prior is None:
        scoring = [
            "SCORING (original resume):",
            "- Be extremely critical.",
            "- If more than 3-4 core technical keywords are missing, the score MUST NOT exceed 55.",
            "- If the resume is missing the primary stack required by the JD, score it in the 30-50 range.",
            "- Do not give merit for general formatting; focus on keyword relevancy.",
        ]
    else:
        previous_missing = ", ".join(prior.missing_keywords) or "None"
        scoring = [
            "SCORING (optimized resume):",
            f"- Previous score: {prior.score}",
            f"- Targeted missing keywords: {previous_missing}",
            "- Verify that the targeted missing keywords have been integrated.",
            "- If the majority of them are now present, the score MUST be between 85 and 99.",
            "- Do NOT calculate relative to the previous score.",
        ]
    human = HumanMessage(content="\n".join(
        _ANALYSIS_RULES
        + [""] + scoring
        + ["", "Output ONLY JSON:", SCORE_SCHEMA,
           "", "Resume:", json.dumps(resume.to_wire(), ensure_ascii=False),
           "", "Job Description:", jd_text]
    ))
    return [system, human]


def _request_report(resume: StructuredResume, jd_text: str, llm: Any,
                    prior: Optional[ScoreReport] = None) -> ScoreReport:
    content = generate(llm, build_scorer_prompt(resume, jd_text, prior))
    return ScoreReport.model_validate(parse_json_payload(content))


def ensure_improvement(score: int, prior_score: int) -> int:
    # Only reachable when the prior score already sits at or above the ceiling
    if score > prior_score:
        return score
    return min(prior_score + 1, 100)


def clamp_after_score(score: int, prior_score: int, policy: ScoringPolicy) -> int:
    """The after-optimization score never regresses below the before score."""
    if score <= prior_score:
        score = clamp(prior_score + policy.after_boost, policy.after_floor, policy.ceiling)
    return ensure_improvement(score, prior_score)


def fallback_before(policy: ScoringPolicy) -> ScoreReport:
    return ScoreReport(score=policy.fallback_initial_score, weak_sections=[FALLBACK_WEAK_SECTION])


def fallback_after(prior_score: int, policy: ScoringPolicy) -> ScoreReport:
    score = clamp(prior_score + policy.fallback_boost, policy.fallback_floor, policy.ceiling)
    return ScoreReport(score=ensure_improvement(score, prior_score))


def score_before(resume: StructuredResume, jd_text: str, llm: Any,
                 policy: ScoringPolicy) -> Tuple[ScoreReport, List[str]]:
    """Score the parsed resume. Returns the report plus any degradation notices."""
    try:
        return _request_report(resume, jd_text, llm), []
    except (MalformedGenerationError, ValidationError) as e:
        logging.warning(f"ATS scorer (before) returned unusable output, using fallback score: {e}")
        return fallback_before(policy), [Degradation.SCORING.notice(f"before: {e}")]


def score_after(resume: StructuredResume, jd_text: str, prior: ScoreReport, llm: Any,
                policy: ScoringPolicy) -> Tuple[ScoreReport, List[str]]:
    """Score the optimized resume against the prior report, clamping so it never regresses."""
    try:
        report = _request_report(resume, jd_text, llm, prior)
    except (MalformedGenerationError, ValidationError) as e:
        logging.warning(f"ATS scorer (after) returned unusable output, boosting prior score: {e}")
        return fallback_after(prior.score, policy), [Degradation.SCORING.notice(f"after: {e}")]
    clamped = clamp_after_score(report.score, prior.score, policy)
    if clamped != report.score:
        logging.info(f"Clamped after-optimization score {report.score} -> {clamped} (prior {prior.score})")
        report = report.model_copy(update={"score": clamped})
    return report, []
