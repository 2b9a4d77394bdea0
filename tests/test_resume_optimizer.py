import copy

import pytest

from helpers import RESUME_DATA, FakeLLM, fenced
from ats_optimizer.agents.resume_optimizer import enforce_guards, optimize_resume
from ats_optimizer.errors import GenerationTransportError
from ats_optimizer.schemas import StructuredResume


def _optimized(**changes):
    data = copy.deepcopy(RESUME_DATA)
    data["summary"] = "Full-stack developer working with Node.js, Docker and Kubernetes."
    data["experience"][0]["bullets"] = [
        "Built REST APIs with Node.js and Express, containerized with Docker and deployed on Kubernetes"
    ]
    data["skills"] = [
        {"category": "DevOps", "items": ["Docker", "Kubernetes"]},
        {"category": "Languages", "items": ["JavaScript", "Python"]},
    ]
    data.update(changes)
    return data


def test_rewrites_within_constraints(resume, initial_report):
    llm = FakeLLM(fenced(_optimized()))
    optimized, notices = optimize_resume(resume, initial_report, llm)
    assert notices == []
    assert "Kubernetes" in optimized.summary
    assert optimized.skills[0].category == "DevOps"
    assert len(optimized.experience) == len(resume.experience)
    assert len(optimized.projects) == len(resume.projects)
    prompt = llm.prompt_text()
    assert "Keep it exactly 1." in prompt
    assert "Docker, Kubernetes" in prompt


def test_falls_back_to_input_on_prose(resume, initial_report):
    optimized, notices = optimize_resume(resume, initial_report, FakeLLM("I improved your resume a lot!"))
    assert optimized == resume
    assert notices[0].startswith("OptimizationDegraded")


def test_falls_back_to_input_on_broken_json(resume, initial_report):
    optimized, notices = optimize_resume(resume, initial_report, FakeLLM('{"summary": "cut off'))
    assert optimized == resume
    assert notices


def test_flat_skill_list_keeps_the_rewrite(resume, initial_report):
    data = _optimized(skills=["JavaScript", "Python", "Docker"])
    optimized, notices = optimize_resume(resume, initial_report, FakeLLM(fenced(data)))
    assert notices == []
    assert "Kubernetes" in optimized.summary
    assert optimized.skills[0].items == ["JavaScript", "Python", "Docker"]


def test_transport_error_propagates(resume, initial_report):
    with pytest.raises(GenerationTransportError):
        optimize_resume(resume, initial_report, FakeLLM(ConnectionError("down")))


def test_added_experience_is_reverted(resume, initial_report):
    extra = {"company": "Invented Inc", "role": "CTO", "startDate": "2020", "bullets": ["Led everything"]}
    data = _optimized(experience=RESUME_DATA["experience"] + [extra])
    optimized, _ = optimize_resume(resume, initial_report, FakeLLM(fenced(data)))
    assert optimized.experience == resume.experience


def test_removed_project_is_reverted(resume, initial_report):
    optimized, _ = optimize_resume(resume, initial_report, FakeLLM(fenced(_optimized(projects=[]))))
    assert optimized.projects == resume.projects
    assert optimized.education == resume.education


@pytest.mark.parametrize("projects", [
    [],
    [{"name": "A", "bullets": ["a"]}],
    [{"name": "A", "bullets": ["a"]}, {"name": "B", "bullets": ["b"]}, {"name": "C", "bullets": ["c"]}],
])
def test_entry_counts_are_conserved(initial_report, projects):
    original = StructuredResume.model_validate({
        "experience": [{"company": "X", "role": "Dev"}, {"company": "Y", "role": "Dev"}],
        "projects": [{"name": "A", "bullets": ["a"]}, {"name": "B", "bullets": ["b"]}],
    })
    generated = {"experience": [{"company": "X", "role": "Dev"}], "projects": projects}
    optimized, _ = optimize_resume(original, initial_report, FakeLLM(fenced(generated)))
    assert len(optimized.experience) == len(original.experience)
    assert len(optimized.projects) == len(original.projects)


def test_factual_fields_are_restored(resume):
    data = _optimized()
    data["personal"] = {"name": "A. Verma", "links": [{"label": "Site", "url": "https://made.up"}]}
    data["experience"][0]["company"] = "Acme Corporation International"
    data["experience"][0]["location"] = "Remote"
    data["education"][0]["institution"] = "University"
    data["education"][0]["degree"] = "Bachelor of Technology"
    data["education"][0]["bullets"] = ["Coursework: distributed systems"]
    data["projects"][0]["link"] = "https://github.com/asha/invented"
    guarded = enforce_guards(resume, StructuredResume.model_validate(data))
    assert guarded.personal == resume.personal
    assert guarded.experience[0].company == "Acme Corp"
    assert guarded.experience[0].location == "Pune"
    assert guarded.experience[0].bullets == data["experience"][0]["bullets"]
    assert guarded.education[0].institution == "ABC University"
    assert guarded.education[0].degree == "B.Tech Computer Science"
    assert guarded.education[0].bullets == ["Coursework: distributed systems"]
    assert guarded.projects[0].link == ""


def test_removed_skills_are_restored(resume):
    data = _optimized(skills=[
        {"category": "DevOps", "items": ["Docker"]},
        {"category": "languages", "items": ["JavaScript"]},
    ])
    guarded = enforce_guards(resume, StructuredResume.model_validate(data))
    assert [g.category for g in guarded.skills] == ["DevOps", "languages"]
    assert guarded.skills[1].items == ["JavaScript", "Python"]


def test_removed_skill_category_is_readded(resume):
    data = _optimized(skills=[{"category": "DevOps", "items": ["Docker"]}])
    guarded = enforce_guards(resume, StructuredResume.model_validate(data))
    assert guarded.skills[-1].category == "Languages"
    assert guarded.skills[-1].items == ["JavaScript", "Python"]
