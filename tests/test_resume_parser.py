import copy

import pytest

from helpers import RESUME_DATA, RESUME_TEXT, FakeLLM, fenced
from ats_optimizer.agents.resume_parser import (
    looks_like_project,
    parse_resume,
    reclassify_education,
)
from ats_optimizer.errors import GenerationTransportError, ParseFailure
from ats_optimizer.schemas import Education, StructuredResume


def test_parses_fenced_json(resume):
    llm = FakeLLM(fenced(RESUME_DATA))
    parsed = parse_resume(RESUME_TEXT, llm)
    assert parsed == resume
    assert "Resume Text:\n" + RESUME_TEXT in llm.prompt_text()


def test_prose_without_json_is_terminal():
    with pytest.raises(ParseFailure):
        parse_resume(RESUME_TEXT, FakeLLM("I could not read this resume."))


def test_invalid_json_is_terminal():
    with pytest.raises(ParseFailure):
        parse_resume(RESUME_TEXT, FakeLLM('{"personal": {"name": "Asha",}'))


def test_schema_mismatch_is_terminal():
    with pytest.raises(ParseFailure):
        parse_resume(RESUME_TEXT, FakeLLM('{"experience": {"company": "Acme"}}'))


def test_flat_string_sections_are_accepted():
    data = copy.deepcopy(RESUME_DATA)
    data["personal"]["links"] = ["https://github.com/asha"]
    data["skills"] = ["JavaScript", "Python"]
    data["certifications"] = ["AWS Certified Developer"]
    parsed = parse_resume(RESUME_TEXT, FakeLLM(fenced(data)))
    assert parsed.personal.links[0].url == "https://github.com/asha"
    assert parsed.skills[0].items == ["JavaScript", "Python"]
    assert parsed.certifications[0].name == "AWS Certified Developer"


def test_transport_error_propagates():
    llm = FakeLLM(ConnectionError("connection reset"))
    with pytest.raises(GenerationTransportError):
        parse_resume(RESUME_TEXT, llm)


def test_invented_urls_are_discarded():
    data = copy.deepcopy(RESUME_DATA)
    data["personal"]["links"].append({"label": "LinkedIn", "url": "https://linkedin.com/in/asha"})
    data["projects"][0]["link"] = "https://github.com/asha/chat-app"
    data["certifications"] = [{"name": "AWS CCP", "url": "https://aws.example/cert/1"}]
    parsed = parse_resume(RESUME_TEXT, FakeLLM(fenced(data)))
    assert [link.url for link in parsed.personal.links] == ["https://github.com/asha"]
    assert parsed.projects[0].link == ""
    assert parsed.certifications[0].url is None


def test_tech_stack_entry_moves_to_projects():
    data = copy.deepcopy(RESUME_DATA)
    data["education"].append({
        "institution": "Library Management System",
        "degree": "",
        "bullets": ["Tech stack: Java, MySQL", "Issue and return tracking"],
    })
    parsed = parse_resume(RESUME_TEXT, FakeLLM(fenced(data)))
    assert [e.institution for e in parsed.education] == ["ABC University"]
    moved = parsed.projects[-1]
    assert moved.name == "Library Management System"
    assert moved.link == ""
    assert moved.bullets == ["Tech stack: Java, MySQL", "Issue and return tracking"]


def test_end_to_end_library_scenario():
    text = (
        "ABC University, B.Tech Computer Science, 2019-2023\n"
        "Library Management System - tech stack: Java, MySQL\n"
    )
    data = {
        "personal": {"name": "Ravi"},
        "education": [
            {"institution": "ABC University", "degree": "B.Tech Computer Science",
             "startDate": "2019", "endDate": "2023"},
            {"institution": "Library Management System", "degree": "",
             "bullets": ["tech stack: Java, MySQL"]},
        ],
        "projects": [],
    }
    parsed = parse_resume(text, FakeLLM(fenced(data)))
    assert [e.degree for e in parsed.education] == ["B.Tech Computer Science"]
    assert [p.name for p in parsed.projects] == ["Library Management System"]


def test_build_verb_without_degree_is_project():
    entry = Education(institution="University Portal", bullets=["Developed a portal for students"])
    assert looks_like_project(entry)


def test_build_verb_with_degree_stays_education():
    entry = Education(institution="XYZ College", degree="Bachelor of Engineering",
                      bullets=["Developed a final-year thesis on compilers"])
    assert not looks_like_project(entry)


def test_duplicate_by_name_substring_is_dropped():
    resume = StructuredResume.model_validate({
        "education": [{"institution": "library system", "bullets": ["Technologies used: Java"]}],
        "projects": [{"name": "Library System Portal", "bullets": ["Something else"]}],
    })
    fixed = reclassify_education(resume)
    assert fixed.education == []
    assert [p.name for p in fixed.projects] == ["Library System Portal"]


def test_duplicate_by_first_bullet_is_dropped():
    resume = StructuredResume.model_validate({
        "education": [{"institution": "Inventory Tool", "bullets": ["Tech stack: Go"]}],
        "projects": [{"name": "Stock Tracker", "bullets": ["Tech stack: Go"]}],
    })
    fixed = reclassify_education(resume)
    assert fixed.education == []
    assert len(fixed.projects) == 1


def test_plain_education_order_is_preserved():
    resume = StructuredResume.model_validate({
        "education": [
            {"institution": "First School", "degree": "Diploma"},
            {"institution": "Second School", "degree": "Master of Science"},
        ],
    })
    assert reclassify_education(resume) == resume
