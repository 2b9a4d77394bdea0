from __future__ import annotations
import logging
from typing import Any, List
from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import ValidationError
from ..errors import MalformedGenerationError, ParseFailure
from ..llm_provider import generate
from ..normalizer import parse_json_payload
from ..schemas import Education, Project, StructuredResume

RESUME_SCHEMA = """{
  "personal": { "name": "string", "email": "string", "phone": "string", "location": "string", "links": [{ "label": "string", "url": "string" }] },
  "summary": "string",
  "experience": [{ "company": "string", "role": "string", "location": "string", "startDate": "string", "endDate": "string", "bullets": ["string"] }],
  "education": [{ "institution": "string", "degree": "string", "startDate": "string", "endDate": "string", "bullets": ["string"] }],
  "projects": [{ "name": "string", "link": "string", "bullets": ["string"] }],
  "skills": [{ "category": "string", "items": ["string"] }],
  "certifications": [{ "name": "string", "date": "string", "issuer": "string", "url": "string" }],
  "achievements": ["string"]
}"""

PROJECT_MARKERS = ("tech stack", "technologies used")
BUILD_VERB = "developed"
DEGREE_TERMS = ("degree", "bachelor", "master", "b.tech", "b.e.")


def build_parser_prompt(resume_text: str) -> List[Any]:
    system = SystemMessage(content=(
        "You extract resume content into structured JSON. Output ONLY valid JSON. No commentary, no markdown."
    ))
    rules = "\n".join([
        "Rules:",
        "- Follow the provided schema exactly.",
        "- Do not infer fake experience.",
        "- If something is unclear, omit it. Do NOT use placeholders like \"University\", \"Company\" or "
        "\"Location\" when the specific name is missing.",
        "- Differentiate strictly between EDUCATION (colleges, degrees) and PROJECTS (apps, websites, tools). "
        "An item describing building a system (e.g. \"Library Management System\", \"University Portal\") is a "
        "PROJECT even if it contains the word \"University\" or \"College\". Only degree programs go under education.",
        "- Preserve the exact names of institutions and companies as they appear in the text.",
        "- Links appear in the text as [Link: <url>] next to the text they belong to.",
        "- Only extract URLs that are explicitly present in the text. Never invent a URL such as "
        "github.com/username/project. If a URL is not in the input text exactly, leave the field empty.",
    ])
    human = HumanMessage(content=(
        rules + "\n\nSchema:\n" + RESUME_SCHEMA + "\n\nResume Text:\n" + resume_text
    ))
    return [system, human]


def looks_like_project(entry: Education) -> bool:
    """Heuristic for project entries that a model filed under education.

    Approximate by nature: it only inspects the entry's text for project
    phrases or a build verb without any degree term. Field names are left
    out so the "degree" key itself never counts as a degree term.
    """
    values = [entry.institution, entry.degree, entry.start_date or "", entry.end_date or ""] + entry.bullets
    blob = " | ".join(values).lower()
    if any(marker in blob for marker in PROJECT_MARKERS):
        return True
    return BUILD_VERB in blob and not any(term in blob for term in DEGREE_TERMS)


def _is_duplicate(candidate: Project, existing: List[Project]) -> bool:
    name = candidate.name.lower()
    for project in existing:
        other = project.name.lower()
        # An empty name never counts as a name match
        if name and other and (other in name or name in other):
            return True
        if candidate.bullets and project.bullets and candidate.bullets[0] == project.bullets[0]:
            return True
    return False


def reclassify_education(resume: StructuredResume) -> StructuredResume:
    """Move project-like education entries into projects, skipping duplicates."""
    education: List[Education] = []
    moved: List[Project] = []
    for entry in resume.education:
        if looks_like_project(entry):
            logging.info(f"Moving misclassified project from education: {entry.institution!r}")
            moved.append(Project(name=entry.institution, link="", bullets=list(entry.bullets)))
        else:
            education.append(entry)
    if not moved:
        return resume

    projects = list(resume.projects)
    for project in moved:
        if _is_duplicate(project, resume.projects):
            logging.info(f"Dropping duplicate reclassified project: {project.name!r}")
            continue
        projects.append(project)
    return resume.model_copy(update={"education": education, "projects": projects})


def drop_unverified_links(resume: StructuredResume, source_text: str) -> StructuredResume:
    """Discard every URL that is not literally present in the source text."""

    def verified(url: str | None) -> bool:
        return bool(url) and url in source_text

    personal = resume.personal.model_copy(
        update={"links": [link for link in resume.personal.links if verified(link.url)]}
    )
    projects = [
        p if not p.link or verified(p.link) else p.model_copy(update={"link": ""})
        for p in resume.projects
    ]
    certifications = [
        c if not c.url or verified(c.url) else c.model_copy(update={"url": None})
        for c in resume.certifications
    ]
    dropped = (
        len(resume.personal.links) - len(personal.links)
        + sum(1 for a, b in zip(resume.projects, projects) if a.link != b.link)
        + sum(1 for a, b in zip(resume.certifications, certifications) if a.url != b.url)
    )
    if dropped:
        logging.warning(f"Discarded {dropped} URL(s) not present in the resume text")
    return resume.model_copy(
        update={"personal": personal, "projects": projects, "certifications": certifications}
    )


def parse_resume(resume_text: str, llm: Any) -> StructuredResume:
    """Parse resume text into a StructuredResume. Raises ParseFailure when no valid JSON comes back."""
    content = generate(llm, build_parser_prompt(resume_text))
    try:
        data = parse_json_payload(content)
        resume = StructuredResume.model_validate(data)
    except MalformedGenerationError as e:
        raise ParseFailure(f"Resume parser failed to generate valid JSON. {e}") from e
    except ValidationError as e:
        raise ParseFailure(f"Resume parser returned data that does not fit the resume schema: {e}") from e
    resume = drop_unverified_links(resume, resume_text)
    return reclassify_education(resume)
