from __future__ import annotations
import json
import logging
from typing import Any, List, Optional, Tuple
from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import ValidationError
from ..errors import Degradation, MalformedGenerationError
from ..llm_provider import generate
from ..normalizer import parse_json_payload
from ..schemas import ScoreReport, SkillGroup, StructuredResume


def build_optimizer_prompt(resume: StructuredResume, ats: Optional[ScoreReport]) -> List[Any]:
    keywords = ", ".join(ats.missing_keywords) if ats else ""
    weak_sections = ", ".join(ats.weak_sections) if ats else ""
    exp_count = len(resume.experience)
    proj_count = len(resume.projects)
    system = SystemMessage(content=(
        "You are an expert resume strategist. Enhance the existing resume content to maximize the ATS "
        "match score. Output ONLY the resume as JSON with the same schema as the input."
    ))
    constraints = [
        f"Missing keywords to integrate: {keywords or 'None'}",
        f"Weak sections: {weak_sections or 'None'}",
        "",
        "STRICT CONSTRAINTS:",
        "1. NO NEW ENTRIES: you are forbidden from adding or removing jobs or projects.",
        f"   - Current experience count: {exp_count}. Keep it exactly {exp_count}.",
        f"   - Current project count: {proj_count}. Keep it exactly {proj_count}.",
        "2. NO TECH STACK SWAPPING: protect the original technologies inside experience and projects. "
        "If the resume says \"Node.js\", do NOT change it to \"Django\" or anything else. New JD keywords "
        "may be added alongside existing ones, never instead of them.",
        "3. PROTECT FACTUAL ENTRIES: institution, company and location names must stay 100% identical "
        "to the input. Education fields (institution, degree, dates) are immutable.",
        "4. SKILLS: you may ADD missing JD-required skills to the skills array alongside the original "
        "ones. Never remove an existing skill.",
        "5. SEMANTIC INFERENCE: if the resume has React, Node, Express and Mongo, treat \"MERN\" as "
        "matched; map specific tools to broader JD requirements.",
        "6. FUNCTIONAL MIRRORING: rewrite existing bullet points to mirror the JD's phrasing and intent.",
        "7. STRATEGIC REORDERING: move the 5-7 most JD-relevant skills to the start of the skills array "
        "and the project closest to the JD to the top of the projects array.",
        f"8. KEYWORD FREQUENCY: mention each of the top keywords ({keywords or 'None'}) in the summary "
        "AND in at least one existing experience or project bullet.",
        "9. CORRECTION: if a PROJECT is listed inside EDUCATION, move it to the projects array.",
    ]
    human = HumanMessage(content=(
        "\n".join(constraints)
        + "\n\nInput ResumeJSON:\n" + json.dumps(resume.to_wire(), ensure_ascii=False)
    ))
    return [system, human]


def _restore_skills(original: List[SkillGroup], optimized: List[SkillGroup]) -> List[SkillGroup]:
    groups = [g.model_copy(update={"items": list(g.items)}) for g in optimized]
    present = {item.casefold() for g in groups for item in g.items}
    for group in original:
        lost = [item for item in group.items if item.casefold() not in present]
        if not lost:
            continue
        target = next((g for g in groups if g.category.casefold() == group.category.casefold()), None)
        if target is None:
            groups.append(SkillGroup(category=group.category, items=lost))
        else:
            target.items.extend(lost)
        present.update(item.casefold() for item in lost)
    return groups


def enforce_guards(original: StructuredResume, optimized: StructuredResume) -> StructuredResume:
    """Undo the edits the optimizer is not allowed to make."""
    update: dict[str, Any] = {"personal": original.personal}

    if len(optimized.experience) != len(original.experience):
        logging.warning(
            f"Optimizer changed experience count {len(original.experience)} -> "
            f"{len(optimized.experience)}; restoring original experience"
        )
        update["experience"] = original.experience
    else:
        update["experience"] = [
            new.model_copy(update={"company": old.company, "location": old.location})
            for old, new in zip(original.experience, optimized.experience)
        ]

    if len(optimized.projects) != len(original.projects):
        logging.warning(
            f"Optimizer changed project count {len(original.projects)} -> "
            f"{len(optimized.projects)}; restoring original projects and education"
        )
        update["projects"] = original.projects
        update["education"] = original.education
    else:
        known_links = {p.link for p in original.projects if p.link}
        update["projects"] = [
            p if not p.link or p.link in known_links else p.model_copy(update={"link": ""})
            for p in optimized.projects
        ]
        if len(optimized.education) == len(original.education):
            update["education"] = [
                new.model_copy(update={
                    "institution": old.institution,
                    "degree": old.degree,
                    "start_date": old.start_date,
                    "end_date": old.end_date,
                })
                for old, new in zip(original.education, optimized.education)
            ]
        else:
            update["education"] = original.education

    update["skills"] = _restore_skills(original.skills, optimized.skills)
    return optimized.model_copy(update=update)


def optimize_resume(resume: StructuredResume, ats: Optional[ScoreReport],
                    llm: Any) -> Tuple[StructuredResume, List[str]]:
    """Rewrite the resume toward the JD keywords. Falls back to the input resume on malformed output."""
    content = generate(llm, build_optimizer_prompt(resume, ats))
    try:
        optimized = StructuredResume.model_validate(parse_json_payload(content))
    except (MalformedGenerationError, ValidationError) as e:
        logging.warning(f"Optimizer failed to generate valid JSON. Returning original resume: {e}")
        return resume, [Degradation.OPTIMIZATION.notice(e)]
    return enforce_guards(resume, optimized), []
